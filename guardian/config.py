"""Compliance Guardian configuration — loaded from environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_prefix": "GUARDIAN_", "env_file": ".env"}

    # Gemini
    google_api_key: str = ""
    gemini_api_url: str = "https://generativelanguage.googleapis.com/v1beta/models"
    audit_model: str = "gemini-3-pro-preview"
    image_model: str = "gemini-2.5-flash-image"
    thinking_budget: int = 1024
    request_timeout: float = 120.0

    # Persistence
    database_path: str = "guardian.db"

    # Admin gate
    admin_id: str = "kidari"
    default_admin_password: str = "0000"

    # Ingestion
    max_pdf_pages: int = 10
    pdf_render_scale: float = 1.5
    line_tolerance: float = 5.0

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: list[str] = ["http://localhost:5173"]
    log_level: str = "INFO"


settings = Settings()
