"""
Storage adapter interface for the signing service.
Defines the contract that all storage backends must implement.
"""

from typing import Protocol, List, Optional

from models import AuditRecord, FieldDefinition


class StorageAdapter(Protocol):
    """
    Protocol defining the interface for all storage adapters.

    This allows swapping between SQLite and plain JSON files without
    changing the router or signing code.

    NOTE:
    - Missing rows are reported as None from getters and as
      core.errors.NotFoundError from mutating calls.
    - Percent coordinates are the only positional data persisted.
    """

    # ========== Documents / audit records ==========

    def create_document(self, record: AuditRecord) -> str:
        """
        Persist a freshly uploaded document (unsigned audit record).

        Returns:
            The record's document_id.
        """
        ...

    def get_audit(self, document_id: str) -> Optional[AuditRecord]:
        """
        Fetch the audit record / document row for a document.

        Returns:
            AuditRecord, or None if not found.
        """
        ...

    def upsert_audit(self, document_id: str, record: AuditRecord) -> AuditRecord:
        """
        Insert or overwrite the single audit record of a document.

        Implementations must guarantee at most one row per document_id.
        """
        ...

    def list_documents(self, limit: int = 100) -> List[AuditRecord]:
        """
        Return documents newest first (by created_at).
        """
        ...

    def delete_document(self, document_id: str) -> int:
        """
        Delete a document row and all of its fields.

        Returns:
            Number of fields deleted.

        Raises:
            NotFoundError if the document does not exist.
        """
        ...

    def count_documents(self) -> int:
        ...

    # ========== Fields ==========

    def list_fields(self, document_id: str, page: Optional[int] = None) -> List[FieldDefinition]:
        """
        List fields of a document, optionally only one page.
        Ordered by page_number, then creation order.
        """
        ...

    def replace_page_fields(
        self,
        document_id: str,
        page_number: int,
        fields: List[FieldDefinition],
    ) -> int:
        """
        Atomically replace every field on one page of a document.
        Fields on other pages are untouched.

        Returns:
            Number of fields written.
        """
        ...

    def delete_field(self, field_id: str) -> None:
        """
        Delete a single field.

        Raises:
            NotFoundError if no field has this id.
        """
        ...

    def count_fields(self, document_id: Optional[str] = None) -> int:
        ...

    # ========== Health ==========

    def ping(self) -> None:
        """Cheap round trip to the backend; raises if it is unreachable."""
        ...
