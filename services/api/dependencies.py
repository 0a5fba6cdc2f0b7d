# services/api/dependencies.py
"""
Service wiring shared by main.py and routers/*.

Everything is built once from Settings and handed to FastAPI through the
get_* dependency functions. Tests call init_services() with their own
Settings (tmp dirs, json backend) before creating a TestClient.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from adapters.base import StorageAdapter
from core.audit import AuditRecorder
from core.file_store import FileStore
from core.pdf_source import PdfSource
from core.signing import SigningService
from settings import Settings, get_settings

logger = logging.getLogger(__name__)


@dataclass
class Services:
    settings: Settings
    storage: StorageAdapter
    files: FileStore
    source: PdfSource
    signing: SigningService
    audit: AuditRecorder

    @property
    def backend(self) -> str:
        return self.settings.storage_backend.lower()


def build_storage(settings: Settings) -> StorageAdapter:
    backend = settings.storage_backend.lower()
    if backend == "sqlite":
        from adapters.sqlite import SqliteAdapter
        logger.info(f"Initializing SQLite adapter: {settings.db_url.split('://')[0]}")
        return SqliteAdapter.from_url(settings.db_url)
    if backend == "json":
        from adapters.json import JsonAdapter
        logger.info(f"Initializing JSON adapter in {settings.json_data_dir}")
        return JsonAdapter(settings.json_data_dir)
    raise ValueError(f"Unknown STORAGE_BACKEND: {settings.storage_backend}")


def build_services(settings: Settings) -> Services:
    storage = build_storage(settings)
    files = FileStore(settings.uploaded_pdfs_dir, settings.signed_pdfs_dir)
    source = PdfSource(
        cache_dir=settings.sample_pdfs_dir,
        files=files,
        storage=storage,
        cache_size=settings.source_cache_size,
        fetch_timeout=settings.fetch_timeout_seconds,
    )
    signing = SigningService(
        storage,
        source,
        files,
        strict_pages=settings.strict_page_index,
        render_width=settings.default_render_width,
    )
    return Services(
        settings=settings,
        storage=storage,
        files=files,
        source=source,
        signing=signing,
        audit=signing.audit,
    )


_services: Optional[Services] = None


def init_services(settings: Optional[Settings] = None) -> Services:
    global _services
    shutdown_services()
    _services = build_services(settings or get_settings())
    return _services


def shutdown_services() -> None:
    global _services
    if _services is None:
        return
    engine = getattr(_services.storage, "engine", None)
    if engine is not None:
        engine.dispose()
    _services = None


def get_services() -> Services:
    if _services is None:
        return init_services()
    return _services


# ---- DI helpers (used by routers/*) ----

def get_storage_adapter() -> StorageAdapter:
    return get_services().storage


def get_file_store() -> FileStore:
    return get_services().files


def get_pdf_source() -> PdfSource:
    return get_services().source


def get_signing_service() -> SigningService:
    return get_services().signing


def get_audit_recorder() -> AuditRecorder:
    return get_services().audit
