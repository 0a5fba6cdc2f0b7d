"""
JSON file storage adapter for the signing service.
Simple file-based storage for quick demos and testing.
Not production-ready (single-process lock only, rewrites whole files).
"""
import json
import threading
from typing import List, Dict, Any, Optional
from pathlib import Path

from core.errors import NotFoundError, PersistenceError
from models import AuditRecord, FieldDefinition


class JsonAdapter:
    """
    JSON file-based storage adapter.
    Stores data in separate JSON files under the data directory.
    Uses atomic file operations for basic consistency.
    """

    def __init__(self, data_dir: str = "data"):
        """
        Initialize the JSON adapter.

        Args:
            data_dir: Directory to store JSON files
        """
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()

        # File paths
        self.documents_file = self.data_dir / "documents.json"
        self.fields_file = self.data_dir / "fields.json"

        # Initialize files if they don't exist
        for file in [self.documents_file, self.fields_file]:
            if not file.exists():
                self._write_file(file, [])

    def _read_file(self, filepath: Path) -> List[Dict[str, Any]]:
        """Read and parse a JSON file."""
        try:
            with open(filepath, "r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            return []

    def _write_file(self, filepath: Path, data: List[Dict[str, Any]]) -> None:
        """Write data to a JSON file atomically."""
        # Write to temporary file first
        tmp_file = filepath.with_suffix(".tmp")
        try:
            with open(tmp_file, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False, default=str)

            # Atomic rename
            tmp_file.replace(filepath)
        except OSError as e:
            raise PersistenceError(f"Failed to write {filepath.name}: {e}", stage="storage") from e

    # ========== Documents / audit ==========

    def create_document(self, record: AuditRecord) -> str:
        with self._lock:
            documents = self._read_file(self.documents_file)
            documents.append(record.to_storage())
            self._write_file(self.documents_file, documents)
        return record.document_id

    def get_audit(self, document_id: str) -> Optional[AuditRecord]:
        documents = self._read_file(self.documents_file)
        row = next((d for d in documents if d["document_id"] == document_id), None)
        return AuditRecord.from_storage(row) if row else None

    def upsert_audit(self, document_id: str, record: AuditRecord) -> AuditRecord:
        row = record.to_storage()
        row["document_id"] = document_id
        with self._lock:
            documents = [d for d in self._read_file(self.documents_file) if d["document_id"] != document_id]
            documents.append(row)
            self._write_file(self.documents_file, documents)
        return AuditRecord.from_storage(row)

    def list_documents(self, limit: int = 100) -> List[AuditRecord]:
        documents = self._read_file(self.documents_file)
        documents.sort(key=lambda d: d.get("created_at") or "", reverse=True)
        return [AuditRecord.from_storage(d) for d in documents[:limit]]

    def delete_document(self, document_id: str) -> int:
        with self._lock:
            documents = self._read_file(self.documents_file)
            remaining = [d for d in documents if d["document_id"] != document_id]
            if len(remaining) == len(documents):
                raise NotFoundError("Document not found", document_id=document_id)

            fields = self._read_file(self.fields_file)
            kept_fields = [f for f in fields if f["document_id"] != document_id]

            self._write_file(self.fields_file, kept_fields)
            self._write_file(self.documents_file, remaining)
        return len(fields) - len(kept_fields)

    def count_documents(self) -> int:
        return len(self._read_file(self.documents_file))

    # ========== Fields ==========

    def list_fields(self, document_id: str, page: Optional[int] = None) -> List[FieldDefinition]:
        rows = [
            (i, f) for i, f in enumerate(self._read_file(self.fields_file))
            if f["document_id"] == document_id
            and (page is None or int(f["page_number"]) == int(page))
        ]
        # Stable: file order breaks created_at ties
        rows.sort(key=lambda item: (int(item[1]["page_number"]), item[1].get("created_at") or "", item[0]))
        return [FieldDefinition.from_storage(f) for _, f in rows]

    def replace_page_fields(
        self,
        document_id: str,
        page_number: int,
        fields: List[FieldDefinition],
    ) -> int:
        new_rows = []
        for f in fields:
            row = f.to_storage()
            row["document_id"] = document_id
            row["page_number"] = int(page_number)
            new_rows.append(row)

        with self._lock:
            existing = self._read_file(self.fields_file)
            kept = [
                f for f in existing
                if not (f["document_id"] == document_id and int(f["page_number"]) == int(page_number))
            ]
            self._write_file(self.fields_file, kept + new_rows)
        return len(new_rows)

    def delete_field(self, field_id: str) -> None:
        with self._lock:
            fields = self._read_file(self.fields_file)
            remaining = [f for f in fields if f["id"] != field_id]
            if len(remaining) == len(fields):
                raise NotFoundError(f"Field {field_id} not found")
            self._write_file(self.fields_file, remaining)

    def count_fields(self, document_id: Optional[str] = None) -> int:
        fields = self._read_file(self.fields_file)
        if document_id is None:
            return len(fields)
        return sum(1 for f in fields if f["document_id"] == document_id)

    def ping(self) -> None:
        if not self.data_dir.is_dir():
            raise PersistenceError(f"Data directory {self.data_dir} is missing", stage="storage")
