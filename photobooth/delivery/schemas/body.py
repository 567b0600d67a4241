from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import List, Literal, Optional


class TemplateType(str, Enum):
    STRIP = "strip"
    COLLAGE = "collage"
    SINGLE = "single"


class CamelModel(BaseModel):
    # Persisted JSON and the kiosk UI use camelCase keys (templateType, backgroundUrl, ...)
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PhotoLayout(CamelModel):
    x: float
    y: float
    width: float
    height: float
    rotation: Optional[float] = None  # reserved, never applied by the compositor

    @field_validator("width", "height")
    @classmethod
    def _positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("slot width and height must be > 0")
        return v


class DesignTemplateConfig(CamelModel):
    id: str
    name: str
    description: str = ""
    template_type: TemplateType = TemplateType.STRIP
    background_url: str
    slots: List[PhotoLayout] = Field(default_factory=list)  # order maps 1:1 to photo order


class GalleryItem(CamelModel):
    id: str
    type: Literal["individual", "composed"]
    data_url: str
    timestamp: int  # epoch milliseconds
    session_id: Optional[str] = None
    design_template_id: Optional[str] = None
    design_template_name: Optional[str] = None


# --- Request / response bodies ---

class ComposeRequest(CamelModel):
    # Photos as data URLs, http(s)/file URLs or paths, in capture order
    photos: List[str]
    template_type: TemplateType = TemplateType.STRIP
    width: Optional[int] = Field(default=None, gt=0)
    height: Optional[int] = Field(default=None, gt=0)
    design_template_id: Optional[str] = None
    design_template: Optional[DesignTemplateConfig] = None
    fit: Optional[Literal["stretch", "cover"]] = None
    save_to_gallery: bool = False
    session_id: Optional[str] = None


class CompositeResponse(CamelModel):
    composite: str  # data URL
    mime_type: str
    width: int
    height: int


class LastTemplateBody(CamelModel):
    id: Optional[str] = None


class DeliveryRequest(CamelModel):
    # Already-produced composites (data URLs); delivery never recomposes
    composites: List[str]
    template_name: str = "strip"
    email: Optional[str] = None
    copies: int = Field(default=1, ge=1)
