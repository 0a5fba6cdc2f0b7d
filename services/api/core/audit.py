# services/api/core/audit.py
"""
Audit / integrity recording.

Keeps one AuditRecord per document (upsert on every signing) and answers
lookup and hash-verification queries on top of the storage adapter.
"""
from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Sequence

from adapters.base import StorageAdapter
from core.errors import NotFoundError
from models import AuditRecord, FieldValue, audit_projection

logger = logging.getLogger(__name__)


def calculate_hash(data: bytes) -> str:
    """SHA-256 hex digest of a byte buffer."""
    return hashlib.sha256(data).hexdigest()


@dataclass(frozen=True)
class AuditSummary:
    document_id: str
    original_hash: str
    signed_hash: Optional[str]
    signed_at: Optional[str]
    fields_count: int
    integrity: str
    created_at: str


@dataclass(frozen=True)
class VerifyResult:
    is_valid: bool
    stored_hash: Optional[str]
    provided_hash: str
    signed_at: Optional[str]
    message: str


class AuditRecorder:
    def __init__(self, storage: StorageAdapter):
        self.storage = storage

    def record_signing(
        self,
        document_id: str,
        *,
        original_bytes: bytes,
        signed_bytes: bytes,
        values: Sequence[FieldValue],
        signed_output_location: str,
        original_source_location: Optional[str] = None,
    ) -> AuditRecord:
        """
        Upsert the audit record after a signing.

        The stored original_hash is kept if the document already has one:
        it was fixed when the source bytes were first ingested.
        """
        existing = self.storage.get_audit(document_id)
        if existing is None:
            existing = AuditRecord(
                document_id=document_id,
                original_hash=calculate_hash(original_bytes),
            )
        elif not existing.original_hash:
            existing.original_hash = calculate_hash(original_bytes)

        record = existing.with_signing(
            signed_hash=calculate_hash(signed_bytes),
            signed_at=datetime.now(timezone.utc).isoformat(),
            fields=[audit_projection(v) for v in values],
            signed_output_location=signed_output_location,
            original_source_location=original_source_location,
        )
        saved = self.storage.upsert_audit(document_id, record)
        logger.info(
            f"Audit updated for {document_id}: original={saved.original_hash[:16]}... "
            f"signed={(saved.signed_hash or '')[:16]}..."
        )
        return saved

    def _require(self, document_id: str, message: str) -> AuditRecord:
        record = self.storage.get_audit(document_id)
        if record is None:
            raise NotFoundError(message, document_id=document_id)
        return record

    def get_audit(self, document_id: str) -> AuditSummary:
        record = self._require(document_id, "Document not found")
        return AuditSummary(
            document_id=record.document_id,
            original_hash=record.original_hash,
            signed_hash=record.signed_hash,
            signed_at=record.signed_at,
            fields_count=len(record.fields),
            integrity=record.integrity,
            created_at=record.created_at,
        )

    def verify(self, document_id: str, supplied_hash: str) -> VerifyResult:
        record = self._require(document_id, "Document not found in audit trail")
        supplied = (supplied_hash or "").strip().lower()
        is_valid = record.signed_hash is not None and record.signed_hash == supplied
        return VerifyResult(
            is_valid=is_valid,
            stored_hash=record.signed_hash,
            provided_hash=supplied_hash,
            signed_at=record.signed_at,
            message="Document integrity verified" if is_valid else "Document has been tampered with",
        )
