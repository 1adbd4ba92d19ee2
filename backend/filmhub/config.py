"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """All configuration loaded from environment / .env file."""

    # ── Application ──────────────────────────────────────────────
    app_name: str = "FilmHub"
    debug: bool = False
    log_level: str = "info"

    # ── TMDB ─────────────────────────────────────────────────────
    tmdb_api_key: Optional[str] = None
    tmdb_language: str = "en-US"
    tmdb_base_url: str = "https://api.themoviedb.org/3"
    tmdb_timeout: float = 15.0

    # ── Document store ───────────────────────────────────────────
    document_store: str = "memory"  # memory | sql
    database_url: str = "sqlite+aiosqlite:///./filmhub.db"

    # ── Blob storage ─────────────────────────────────────────────
    blob_storage_root: str = "./storage"
    blob_base_url: str = "http://localhost:8000/files"

    # ── Auth ─────────────────────────────────────────────────────
    min_password_length: int = 6
    bcrypt_rounds: int = 12
    enforce_permissions: bool = True

    # ── Lists ────────────────────────────────────────────────────
    public_lists_limit: int = 50

    @property
    def has_tmdb(self) -> bool:
        return bool(self.tmdb_api_key)

    @property
    def uses_sql_store(self) -> bool:
        return self.document_store == "sql"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
