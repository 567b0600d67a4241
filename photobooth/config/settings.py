# config/settings.py
import os

from pydantic_settings import BaseSettings
from typing import List, Optional

class Settings(BaseSettings):
    # API
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "PhotoBooth Kiosk"

    # CORS
    ALLOWED_HOSTS: List[str] = ["*"]

    # Persistence (local key-value store)
    DATABASE_URL: str = "sqlite+aiosqlite:///./photobooth.db"

    # Templates & output
    # Site-relative references such as /templates/gold-frame.png resolve under PUBLIC_DIR
    PUBLIC_DIR: str = "public"
    # Where built-in backgrounds are written; defaults to PUBLIC_DIR/templates
    TEMPLATES_DIR: Optional[str] = None
    OUTPUT_DIR: str = "output"
    PRINT_SPOOL_DIR: str = "spool"
    # e.g. "lp" or "lpr"; empty means the print page is only rendered
    PRINT_COMMAND: Optional[str] = None

    # Composition
    BRAND_LABEL: str = "PhotoBooth"
    ACCENT_COLOR: str = "#ff6b6b"
    JPEG_QUALITY: int = 90
    DEFAULT_FIT: str = "stretch"
    REQUEST_TIMEOUT: int = 30
    COMPOSE_TIMEOUT_SECONDS: int = 55

    # Delivery
    EMAIL_API_KEY: Optional[str] = None
    EMAIL_SIMULATED_DELAY: float = 2.0
    SHARE_BASE_URL: str = "https://photobooth.app/photos"

    # Env
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    @property
    def templates_path(self) -> str:
        return self.TEMPLATES_DIR or os.path.join(self.PUBLIC_DIR, "templates")

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
