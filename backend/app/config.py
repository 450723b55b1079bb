"""Application configuration via environment variables."""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """App settings loaded from .env or environment."""

    DATABASE_URL: str = "sqlite:///./team_events.db"
    CORS_ORIGINS: str = "http://localhost:5173"
    LOG_LEVEL: str = "INFO"

    # Identity gate
    ALLOWED_EMAIL_DOMAIN: str = "example.com"
    IDENTITY_JWT_SECRET: str = ""
    IDENTITY_JWT_ALGORITHM: str = "HS256"
    IDENTITY_JWT_AUDIENCE: str = ""

    # Events / RSVPs
    DEFAULT_OFFICE: str = "VIE"
    ATTENDEE_PREVIEW_LIMIT: int = 5
    WAITLIST_AUTO_PROMOTE: bool = False

    class Config:
        env_file = ".env"


settings = Settings()
