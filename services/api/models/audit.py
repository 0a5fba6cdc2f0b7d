from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _iso(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


@dataclass
class AuditRecord:
    """
    One row per document: the uploaded original plus its latest signing.

    Created at ingestion with only the original half filled in
    (signed_hash is None -> status "pending"). Every signing overwrites the
    signed half in place; there is no history of earlier signings.
    """
    document_id: str
    original_hash: str

    signed_hash: Optional[str] = None
    signed_at: Optional[str] = None
    # Trimmed field projections: {type, x, y, width, height, page}
    fields: List[Dict[str, Any]] = field(default_factory=list)

    signed_output_location: Optional[str] = None
    original_source_location: Optional[str] = None

    file_name: Optional[str] = None
    file_size: int = 0
    page_count: int = 0

    created_at: str = field(default_factory=_now_iso)

    @property
    def status(self) -> str:
        return "signed" if self.signed_at else "pending"

    @property
    def integrity(self) -> str:
        # Informational only: any rendered field changes the bytes.
        return "Modified" if self.original_hash != self.signed_hash else "Intact"

    def with_signing(
        self,
        *,
        signed_hash: str,
        signed_at: str,
        fields: List[Dict[str, Any]],
        signed_output_location: str,
        original_source_location: Optional[str],
    ) -> "AuditRecord":
        return replace(
            self,
            signed_hash=signed_hash,
            signed_at=signed_at,
            fields=list(fields),
            signed_output_location=signed_output_location,
            original_source_location=self.original_source_location or original_source_location,
        )

    # ------------ storage layer ------------

    @classmethod
    def from_storage(cls, row: Dict[str, Any]) -> "AuditRecord":
        return cls(
            document_id=row["document_id"],
            original_hash=row.get("original_hash") or "",
            signed_hash=row.get("signed_hash") or None,
            signed_at=_iso(row.get("signed_at")),
            fields=list(row.get("fields") or []),
            signed_output_location=row.get("signed_output_location") or None,
            original_source_location=row.get("original_source_location") or None,
            file_name=row.get("file_name") or None,
            file_size=int(row.get("file_size") or 0),
            page_count=int(row.get("page_count") or 0),
            created_at=_iso(row.get("created_at")) or _now_iso(),
        )

    def to_storage(self) -> Dict[str, Any]:
        return {
            "document_id": self.document_id,
            "original_hash": self.original_hash,
            "signed_hash": self.signed_hash,
            "signed_at": self.signed_at,
            "fields": list(self.fields),
            "signed_output_location": self.signed_output_location,
            "original_source_location": self.original_source_location,
            "file_name": self.file_name,
            "file_size": self.file_size,
            "page_count": self.page_count,
            "created_at": self.created_at,
        }
