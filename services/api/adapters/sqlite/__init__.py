# services/api/adapters/sqlite/__init__.py
from __future__ import annotations

import os
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    delete,
    event,
    func,
    insert,
    select,
    text,
    update,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from core.errors import NotFoundError, PersistenceError
from models import AuditRecord, FieldDefinition

# ---- Engine (SQLite) with WAL & pragmas -------------------------------------

def _ensure_dir(path: str):
    d = os.path.dirname(path)
    if d and not os.path.isdir(d):
        os.makedirs(d, exist_ok=True)

def make_engine(db_url: str) -> Engine:
    # Create data dir if sqlite file
    if db_url.startswith("sqlite:///"):
        file_path = db_url.replace("sqlite:///", "", 1)
        _ensure_dir(file_path)

    engine = create_engine(db_url, future=True, pool_pre_ping=True)

    # Apply pragmas per-connection
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):  # type: ignore
        if isinstance(dbapi_connection, sqlite3.Connection):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL;")
            cursor.execute("PRAGMA synchronous=NORMAL;")
            cursor.execute("PRAGMA temp_store=MEMORY;")
            cursor.close()

    return engine

# ---- Schema via SQLAlchemy Core ---------------------------------------------

metadata = MetaData()

# One row per document: original upload + latest signing (audit trail)
documents = Table(
    "documents",
    metadata,
    Column("document_id", String, primary_key=True),
    Column("original_hash", String(64), nullable=False),
    Column("signed_hash", String(64)),
    Column("signed_at", DateTime(timezone=True)),
    Column("fields", JSON, nullable=False, default=list),
    Column("signed_output_location", Text),
    Column("original_source_location", Text),
    Column("file_name", String),
    Column("file_size", Integer, nullable=False, default=0),
    Column("page_count", Integer, nullable=False, default=0),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

# No FK to documents: the editor may place fields on a document that was
# only ever signed through /sign-pdf. Cascade is done in delete_document.
document_fields = Table(
    "document_fields",
    metadata,
    Column("id", String, primary_key=True),
    Column("document_id", String, nullable=False),
    Column("field_type", String, nullable=False),
    Column("page_number", Integer, nullable=False),
    Column("position", Integer, nullable=False, default=0),  # order within a page save
    Column("x_percent", Float, nullable=False),
    Column("y_percent", Float, nullable=False),
    Column("width_percent", Float, nullable=False),
    Column("height_percent", Float, nullable=False),
    Column("label", String, nullable=False, default=""),
    Column("required", Boolean, nullable=False, default=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

Index("idx_documents_created", documents.c.created_at)
Index("idx_fields_doc_page", document_fields.c.document_id, document_fields.c.page_number)


def _to_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _document_values(record: AuditRecord) -> Dict[str, Any]:
    row = record.to_storage()
    row["signed_at"] = _to_datetime(record.signed_at)
    row["created_at"] = _to_datetime(record.created_at)
    return row

# ---- Adapter implementation --------------------------------------------------

@dataclass(frozen=True)
class SqliteAdapter:
    engine: Engine

    @classmethod
    def from_url(cls, db_url: str = "sqlite:///data/signing.db") -> "SqliteAdapter":
        eng = make_engine(db_url)
        metadata.create_all(eng)
        return cls(engine=eng)

    # Documents / audit
    def create_document(self, record: AuditRecord) -> str:
        try:
            with self.engine.begin() as conn:
                conn.execute(insert(documents).values(**_document_values(record)))
        except SQLAlchemyError as e:
            raise PersistenceError(
                f"Failed to store document: {e}",
                document_id=record.document_id,
                stage="create_document",
            ) from e
        return record.document_id

    def get_audit(self, document_id: str) -> Optional[AuditRecord]:
        with self.engine.begin() as conn:
            row = conn.execute(
                select(documents).where(documents.c.document_id == document_id)
            ).mappings().first()
        return AuditRecord.from_storage(dict(row)) if row else None

    def upsert_audit(self, document_id: str, record: AuditRecord) -> AuditRecord:
        values = _document_values(record)
        values["document_id"] = document_id
        try:
            with self.engine.begin() as conn:
                exists = conn.execute(
                    select(documents.c.document_id).where(documents.c.document_id == document_id)
                ).first()
                if exists:
                    conn.execute(
                        update(documents)
                        .where(documents.c.document_id == document_id)
                        .values(**values)
                    )
                else:
                    conn.execute(insert(documents).values(**values))
        except SQLAlchemyError as e:
            raise PersistenceError(
                f"Failed to write audit record: {e}",
                document_id=document_id,
                stage="audit",
            ) from e
        return AuditRecord.from_storage(values)

    def list_documents(self, limit: int = 100) -> List[AuditRecord]:
        with self.engine.begin() as conn:
            rows = conn.execute(
                select(documents).order_by(documents.c.created_at.desc()).limit(limit)
            ).mappings().all()
        return [AuditRecord.from_storage(dict(r)) for r in rows]

    def delete_document(self, document_id: str) -> int:
        with self.engine.begin() as conn:
            res = conn.execute(delete(documents).where(documents.c.document_id == document_id))
            if res.rowcount == 0:
                raise NotFoundError("Document not found", document_id=document_id)
            fres = conn.execute(
                delete(document_fields).where(document_fields.c.document_id == document_id)
            )
            return fres.rowcount or 0

    def count_documents(self) -> int:
        with self.engine.begin() as conn:
            return conn.execute(select(func.count()).select_from(documents)).scalar_one()

    # Fields
    def list_fields(self, document_id: str, page: Optional[int] = None) -> List[FieldDefinition]:
        q = select(document_fields).where(document_fields.c.document_id == document_id)
        if page is not None:
            q = q.where(document_fields.c.page_number == int(page))
        q = q.order_by(
            document_fields.c.page_number.asc(),
            document_fields.c.created_at.asc(),
            document_fields.c.position.asc(),
        )
        with self.engine.begin() as conn:
            rows = conn.execute(q).mappings().all()
        return [FieldDefinition.from_storage(dict(r)) for r in rows]

    # Replace one page (atomic: delete + insert in the same transaction)
    def replace_page_fields(
        self,
        document_id: str,
        page_number: int,
        fields: List[FieldDefinition],
    ) -> int:
        rows = []
        for pos, f in enumerate(fields):
            row = f.to_storage()
            row.update(
                document_id=document_id,
                page_number=int(page_number),
                field_type=f.field_type.value,
                position=pos,
                created_at=_to_datetime(f.created_at),
            )
            rows.append(row)

        try:
            with self.engine.begin() as conn:
                conn.execute(
                    delete(document_fields).where(
                        (document_fields.c.document_id == document_id)
                        & (document_fields.c.page_number == int(page_number))
                    )
                )
                if rows:
                    conn.execute(document_fields.insert(), rows)
        except SQLAlchemyError as e:
            raise PersistenceError(
                f"Failed to save fields: {e}",
                document_id=document_id,
                stage="fields",
            ) from e
        return len(rows)

    def delete_field(self, field_id: str) -> None:
        with self.engine.begin() as conn:
            res = conn.execute(delete(document_fields).where(document_fields.c.id == field_id))
            if res.rowcount == 0:
                raise NotFoundError(f"Field {field_id} not found")

    def count_fields(self, document_id: Optional[str] = None) -> int:
        q = select(func.count()).select_from(document_fields)
        if document_id is not None:
            q = q.where(document_fields.c.document_id == document_id)
        with self.engine.begin() as conn:
            return conn.execute(q).scalar_one()

    def ping(self) -> None:
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
