# config/settings.py
from pydantic_settings import BaseSettings
from typing import List

class Settings(BaseSettings):
    # API
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "Photobooth Border Service"

    # CORS
    ALLOWED_HOSTS: List[str] = ["*"]

    # Auth
    BASIC_AUTH_USERNAME: str = "admin"
    BASIC_AUTH_PASSWORD: str = "secret"

    # Storage
    TEMPLATES_DIR: str = "templates"
    OUTPUT_DIR: str = "public/uploads"

    # Rendering
    DEFAULT_BACKGROUND: str = "#ffffff"
    MAX_WORKERS: int = 4

    # Env
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
