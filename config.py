import os
from typing import Optional

from pydantic import BaseModel, Field


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    database_url: Optional[str] = None
    database_name: str = "biolink"
    port: int = 8000
    save_delay_seconds: float = Field(1.0, description="Quiet period of the profile auto-save")
    upload_limit_bytes: int = 2 * 1024 * 1024
    toast_seconds: float = 3.0
    storage_dir: str = "uploads"
    storage_bucket: str = "avatars"
    public_base_url: str = ""
    require_email_confirmation: bool = False
    session_cookie: str = "biolink_session"
    session_ttl_seconds: float = Field(14 * 24 * 3600, description="Lifetime of a sign-in session")
    editor_idle_seconds: float = Field(1800.0, description="Cached editors unused this long are closed")


def load_settings() -> Settings:
    return Settings(
        database_url=os.getenv("DATABASE_URL"),
        database_name=os.getenv("DATABASE_NAME", "biolink"),
        port=int(os.getenv("PORT", 8000)),
        save_delay_seconds=float(os.getenv("SAVE_DELAY_SECONDS", 1.0)),
        upload_limit_bytes=int(os.getenv("UPLOAD_LIMIT_BYTES", 2 * 1024 * 1024)),
        toast_seconds=float(os.getenv("TOAST_SECONDS", 3.0)),
        storage_dir=os.getenv("STORAGE_DIR", "uploads"),
        storage_bucket=os.getenv("STORAGE_BUCKET", "avatars"),
        public_base_url=os.getenv("PUBLIC_BASE_URL", ""),
        require_email_confirmation=_flag("REQUIRE_EMAIL_CONFIRMATION"),
        session_cookie=os.getenv("SESSION_COOKIE", "biolink_session"),
        session_ttl_seconds=float(os.getenv("SESSION_TTL_SECONDS", 14 * 24 * 3600)),
        editor_idle_seconds=float(os.getenv("EDITOR_IDLE_SECONDS", 1800.0)),
    )
