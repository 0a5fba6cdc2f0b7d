# services/api/core/file_store.py
from __future__ import annotations

import logging
import re
import secrets
import time
from pathlib import Path
from typing import Optional

from core.errors import NotFoundError, PersistenceError

logger = logging.getLogger(__name__)

UPLOADED_PREFIX = "/uploaded-pdfs/"
DOWNLOAD_PREFIX = "/download/"

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9.-]")


def sanitize_filename(name: str) -> str:
    """Keep letters, digits, dots and dashes; everything else becomes '_'."""
    return _UNSAFE_CHARS.sub("_", name or "document.pdf")


def _millis() -> int:
    return int(time.time() * 1000)


class FileStore:
    """
    Uploaded originals and signed outputs on local disk.

    Locations handed out to clients are server-relative paths:
      /uploaded-pdfs/<file>  for originals (served statically)
      /download/<file>       for signed outputs
    """

    def __init__(self, uploaded_dir: str, signed_dir: str):
        self.uploaded_dir = Path(uploaded_dir)
        self.signed_dir = Path(signed_dir)
        self.uploaded_dir.mkdir(parents=True, exist_ok=True)
        self.signed_dir.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def _inside(base: Path, filename: str) -> Path:
        # No path components from the client: /download/../settings.py must not resolve
        name = Path(filename).name
        if not name or name != filename:
            raise NotFoundError("File not found")
        return base / name

    # ---------- originals ----------

    def save_upload(self, data: bytes, original_name: str) -> str:
        """Store an uploaded PDF. Returns its /uploaded-pdfs/ location."""
        filename = f"{_millis()}-{secrets.randbelow(10**9)}-{sanitize_filename(original_name)}"
        path = self.uploaded_dir / filename
        try:
            path.write_bytes(data)
        except OSError as e:
            raise PersistenceError(f"Failed to store upload: {e}", stage="upload") from e
        return UPLOADED_PREFIX + filename

    def uploaded_path(self, location: Optional[str]) -> Optional[Path]:
        """Local path for an /uploaded-pdfs/ location, or None for anything else."""
        if not location or UPLOADED_PREFIX not in location:
            return None
        filename = location.split(UPLOADED_PREFIX, 1)[1].split("?", 1)[0]
        try:
            return self._inside(self.uploaded_dir, filename)
        except NotFoundError:
            return None

    def delete_upload(self, location: Optional[str]) -> bool:
        path = self.uploaded_path(location)
        return self._unlink(path, "original")

    # ---------- signed outputs ----------

    def write_signed(self, document_id: str, data: bytes) -> str:
        """Store signed bytes. Returns the /download/ location."""
        filename = f"{sanitize_filename(document_id)}-signed-{_millis()}.pdf"
        try:
            (self.signed_dir / filename).write_bytes(data)
        except OSError as e:
            raise PersistenceError(
                f"Signing succeeded but the output could not be written: {e}",
                document_id=document_id,
                stage="write_output",
            ) from e
        return DOWNLOAD_PREFIX + filename

    def read_signed(self, filename: str) -> bytes:
        path = self._inside(self.signed_dir, filename)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            raise NotFoundError("File not found")

    def delete_signed(self, location: Optional[str]) -> bool:
        if not location or DOWNLOAD_PREFIX not in location:
            return False
        filename = location.split(DOWNLOAD_PREFIX, 1)[1]
        try:
            path = self._inside(self.signed_dir, filename)
        except NotFoundError:
            return False
        return self._unlink(path, "signed")

    @staticmethod
    def _unlink(path: Optional[Path], kind: str) -> bool:
        if path is None:
            return False
        try:
            path.unlink()
        except FileNotFoundError:
            logger.info(f"{kind.capitalize()} file not found, skipping deletion: {path.name}")
            return False
        logger.info(f"Deleted {kind} PDF: {path.name}")
        return True

    # ---------- stats ----------

    def counts(self) -> dict:
        def _count(d: Path) -> int:
            return sum(1 for p in d.iterdir() if p.is_file()) if d.is_dir() else 0

        return {
            "uploadedPdfs": _count(self.uploaded_dir),
            "signedPdfs": _count(self.signed_dir),
        }
