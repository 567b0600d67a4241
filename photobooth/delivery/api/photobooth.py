# photobooth/delivery/api/photobooth.py
from fastapi import APIRouter, Request, HTTPException, Query, status
from fastapi.responses import JSONResponse
from typing import List, Literal, Optional
import logging
import traceback
import asyncio

from photobooth.config.settings import settings
from photobooth.delivery.schemas.body import (
    ComposeRequest, CompositeResponse, DeliveryRequest, DesignTemplateConfig, GalleryItem, LastTemplateBody,
)
from photobooth.domain.compositor import ComposeOptions
from photobooth.domain.delivery_service import METHODS
from photobooth.domain.errors import ContextUnavailable, DecodeError, DeliveryError, TemplateNotFoundError
from photobooth.domain.gallery import new_item

router = APIRouter()
logger = logging.getLogger("uvicorn.error")


def _service(request: Request, name: str):
    service = getattr(request.app.state, name, None)
    if service is None:
        logger.error(f"Service '{name}' not initialized")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service is not ready. Please try again in a moment.",
        )
    return service


def _resolve_design(request: Request, body: ComposeRequest) -> Optional[DesignTemplateConfig]:
    if body.design_template is not None:
        return body.design_template
    if body.design_template_id:
        design = _service(request, "catalog").get_by_id(body.design_template_id)
        if design is None:
            raise TemplateNotFoundError(body.design_template_id)
        return design
    return None


# --- Composition ---

@router.post("/compose", response_model=CompositeResponse, response_model_by_alias=True)
async def compose(request: Request, body: ComposeRequest):
    compositor = _service(request, "compositor")
    logger.info(f"=== COMPOSE START ({len(body.photos)} photos, template={body.template_type.value}) ===")

    try:
        design = _resolve_design(request, body)
        options = ComposeOptions(width=body.width, height=body.height, design_template=design, fit=body.fit)
        try:
            composite = await asyncio.wait_for(
                compositor.compose(body.photos, body.template_type, options),
                timeout=settings.COMPOSE_TIMEOUT_SECONDS,
            )
        except asyncio.TimeoutError:
            logger.error(f"=== COMPOSE TIMEOUT after {settings.COMPOSE_TIMEOUT_SECONDS}s ===")
            raise HTTPException(status_code=504, detail="Composition timed out")

        logger.info(f"=== COMPOSE SUCCESS ({composite.width}x{composite.height} {composite.mime_type}) ===")
        data_url = composite.to_data_url()
        if body.save_to_gallery:
            await _service(request, "gallery").add(new_item("composed", data_url, design, body.session_id))
        return CompositeResponse(
            composite=data_url,
            mime_type=composite.mime_type,
            width=composite.width,
            height=composite.height,
        )

    except HTTPException:
        raise
    except TemplateNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.to_dict())
    except DecodeError as e:
        logger.warning(f"=== COMPOSE REJECTED: {e.message} ===")
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=e.to_dict())
    except ContextUnavailable as e:
        logger.error(f"=== COMPOSE FAILED: {e.message} ===")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.to_dict())
    except Exception as e:
        logger.error(f"=== COMPOSE ERROR: {e} ===\n{traceback.format_exc()}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error while composing photos.",
        )


# --- Design templates ---

@router.get("/templates")
async def list_templates(request: Request):
    catalog = _service(request, "catalog")
    return [t.model_dump(mode="json", by_alias=True) for t in catalog.get_all()]


@router.get("/templates/last-selected")
async def get_last_selected(request: Request):
    catalog = _service(request, "catalog")
    template = await catalog.get_last_selected()
    return {"id": template.id if template else None}


@router.put("/templates/last-selected")
async def set_last_selected(request: Request, body: LastTemplateBody):
    catalog = _service(request, "catalog")
    if body.id and catalog.get_by_id(body.id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=TemplateNotFoundError(body.id).to_dict())
    await catalog.set_last_selected(body.id)
    return {"id": body.id}


@router.get("/templates/{template_id}")
async def get_template(request: Request, template_id: str):
    template = _service(request, "catalog").get_by_id(template_id)
    if template is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=TemplateNotFoundError(template_id).to_dict())
    return template.model_dump(mode="json", by_alias=True)


@router.put("/templates/{template_id}")
async def save_template(request: Request, template_id: str, template: DesignTemplateConfig):
    if template.id != template_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Template id does not match the URL")
    saved = await _service(request, "catalog").save_template(template)
    return saved.model_dump(mode="json", by_alias=True)


# --- Delivery ---

@router.post("/deliveries/{method}")
async def deliver(request: Request, method: str, body: DeliveryRequest):
    if method not in METHODS:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown delivery method '{method}'")
    delivery = _service(request, "delivery")
    try:
        return await delivery.deliver(method, body.composites, body.template_name, email=body.email, copies=body.copies)
    except DeliveryError as e:
        # The composite is echoed back so the kiosk can try another method without recomposing
        return JSONResponse(status_code=status.HTTP_502_BAD_GATEWAY,
                            content={**e.to_dict(), "composites": body.composites})


# --- Gallery ---

@router.get("/gallery")
async def list_gallery(request: Request, type: Literal["all", "individual", "composed"] = "all",
                       folder: Optional[str] = Query(default=None)):
    items = await _service(request, "gallery").list(type, folder)
    return [i.model_dump(mode="json", by_alias=True) for i in items]


@router.get("/gallery/folders", response_model=List[str])
async def gallery_folders(request: Request):
    return await _service(request, "gallery").folders()


@router.post("/gallery", status_code=status.HTTP_201_CREATED)
async def add_gallery_item(request: Request, item: GalleryItem):
    saved = await _service(request, "gallery").add(item)
    return saved.model_dump(mode="json", by_alias=True)


@router.delete("/gallery/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_gallery_item(request: Request, item_id: str):
    if not await _service(request, "gallery").delete(item_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Gallery item '{item_id}' not found")
