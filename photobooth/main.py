# photobooth/main.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from concurrent.futures import ThreadPoolExecutor
import logging
import os

from photobooth.config.database import create_engine, create_session_factory, init_db
from photobooth.config.settings import settings
from photobooth.delivery.api.photobooth import router
from photobooth.domain.compositor import Compositor
from photobooth.domain.delivery_service import DeliveryService
from photobooth.domain.gallery import Gallery
from photobooth.domain.template_registry import BUILTIN_TEMPLATES, TemplateCatalog
from photobooth.infrastructure.cv.image_loader import ImageLoader
from photobooth.infrastructure.cv.template_assets import ensure_builtin_backgrounds
from photobooth.infrastructure.database.store import KeyValueStore

logging.getLogger("PIL").setLevel(logging.WARNING)
logger = logging.getLogger("uvicorn.error")


@asynccontextmanager
async def lifespan(app: FastAPI):
    max_workers = min(4, os.cpu_count() or 1)
    app.state.executor = ThreadPoolExecutor(max_workers=max_workers)
    logger.info(f"'{settings.PROJECT_NAME}' starting (mode: {settings.ENVIRONMENT}).")
    logger.info(f"Shared ThreadPoolExecutor created with {max_workers} workers.")

    engine = create_engine()
    await init_db(engine)
    store = KeyValueStore(create_session_factory(engine))

    ensure_builtin_backgrounds(BUILTIN_TEMPLATES, settings.templates_path)

    # Registry is built once per session and refreshed after each save
    app.state.catalog = TemplateCatalog(store)
    await app.state.catalog.load()
    app.state.gallery = Gallery(store)
    app.state.compositor = Compositor(
        loader=ImageLoader(public_dir=settings.PUBLIC_DIR, executor=app.state.executor),
        executor=app.state.executor,
    )
    app.state.delivery = DeliveryService()
    yield
    logger.info("Shutting down ThreadPoolExecutor...")
    app.state.executor.shutdown(wait=True)
    await engine.dispose()
    logger.info("PhotoBooth service stopped.")

app = FastAPI(
    title="PhotoBooth Kiosk Service",
    description="Composes captured photos into strip, collage, single and design templates and hands them to print/email/save",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_HOSTS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router, prefix=settings.API_V1_STR)

@app.get("/")
async def root():
    return {"message": "PhotoBooth Kiosk Service", "version": "1.0.0", "status": "ok"}

@app.get("/health")
async def health_check():
    ready = getattr(app.state, "compositor", None) is not None
    return {"status": "ok", "service": "PhotoBooth 1.0", "compositor_ready": ready}
