# services/api/settings.py
from pydantic_settings import BaseSettings
from pydantic import ConfigDict, Field
from typing import List
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent


class Settings(BaseSettings):
    # Storage settings
    # Default to SQLite; override via .env (STORAGE_BACKEND=json) for demos/tests
    storage_backend: str = "sqlite"
    db_url: str = "sqlite:///data/signing.db"
    json_data_dir: str = "data"

    # File locations (uploaded originals, signed outputs, cached sources)
    uploaded_pdfs_dir: str = str(BASE_DIR / "uploaded-pdfs")
    signed_pdfs_dir: str = str(BASE_DIR / "signed-pdfs")
    sample_pdfs_dir: str = str(BASE_DIR / "sample-pdfs")

    # Upload limit (bytes). Larger originals are rejected with 400.
    max_upload_bytes: int = 10 * 1024 * 1024

    # Prefix used when building absolute URLs for uploaded files.
    # Empty -> relative URLs (/uploaded-pdfs/<file>)
    public_base_url: str = ""

    # CORS settings
    allowed_origins: str = "http://localhost:3000,http://localhost:5173"

    # Signing
    default_render_width: int = 800
    # When TRUE, a field pointing at a page that does not exist is a 400
    # instead of being drawn on the first page.
    strict_page_index: bool = False

    # Source PDF resolution
    source_cache_size: int = Field(
        default=32,
        description="How many source PDFs to keep in memory (LRU)",
    )
    fetch_timeout_seconds: float = 30.0

    log_level: str = "INFO"

    model_config = ConfigDict(
        # Always load .env from the same folder as this settings.py
        env_file=str(BASE_DIR / ".env"),
        extra="ignore",
    )

    def get_origins_list(self) -> List[str]:
        """Parse comma-separated origins into a list."""
        if not self.allowed_origins:
            return ["*"]
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    def public_url(self, path: str) -> str:
        """Join public_base_url and a server-relative path."""
        if not self.public_base_url:
            return path
        return self.public_base_url.rstrip("/") + path


_settings_instance = None

def get_settings() -> Settings:
    """Singleton pattern for settings."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance
