"""
Tests for the storage adapters. Every test runs against SQLite and JSON.

Run with: pytest tests/test_adapters.py -v
"""
import pytest

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from adapters.json import JsonAdapter
from adapters.sqlite import SqliteAdapter
from core.errors import NotFoundError
from models import AuditRecord, FieldDefinition, FieldType


@pytest.fixture(params=["sqlite", "json"])
def storage(request, tmp_path):
    if request.param == "sqlite":
        adapter = SqliteAdapter.from_url(f"sqlite:///{tmp_path / 'signing.db'}")
        yield adapter
        adapter.engine.dispose()
    else:
        yield JsonAdapter(str(tmp_path / "json"))


def make_field(document_id, page, label, field_type=FieldType.TEXT, created_at=None):
    f = FieldDefinition(
        document_id=document_id,
        field_type=field_type,
        page_number=page,
        x_percent=10,
        y_percent=80,
        width_percent=20,
        height_percent=5,
        label=label,
    )
    if created_at:
        f.created_at = created_at
    return f


def make_record(document_id, created_at="2026-01-01T00:00:00+00:00"):
    return AuditRecord(
        document_id=document_id,
        original_hash="a" * 64,
        original_source_location=f"/uploaded-pdfs/{document_id}.pdf",
        file_name=f"{document_id}.pdf",
        file_size=1234,
        page_count=2,
        created_at=created_at,
    )


class TestDocuments:
    """Document / audit rows."""

    def test_create_and_get(self, storage):
        storage.create_document(make_record("doc-1"))
        record = storage.get_audit("doc-1")
        assert record is not None
        assert record.original_hash == "a" * 64
        assert record.file_name == "doc-1.pdf"
        assert record.page_count == 2
        assert record.status == "pending"

    def test_get_missing(self, storage):
        assert storage.get_audit("nope") is None

    def test_upsert_keeps_one_row(self, storage):
        storage.create_document(make_record("doc-1"))
        for n in range(2):
            current = storage.get_audit("doc-1")
            signed = current.with_signing(
                signed_hash=str(n) * 64,
                signed_at=f"2026-02-0{n + 1}T00:00:00+00:00",
                fields=[{"type": "text", "x": 1, "y": 2, "width": 3, "height": 4, "page": 1}],
                signed_output_location=f"/download/doc-1-signed-{n}.pdf",
                original_source_location=None,
            )
            storage.upsert_audit("doc-1", signed)

        assert storage.count_documents() == 1
        record = storage.get_audit("doc-1")
        assert record.signed_hash == "1" * 64
        assert record.signed_output_location == "/download/doc-1-signed-1.pdf"
        assert record.original_source_location == "/uploaded-pdfs/doc-1.pdf"
        assert record.status == "signed"
        assert len(record.fields) == 1

    def test_upsert_creates(self, storage):
        record = AuditRecord(document_id="sample", original_hash="b" * 64, signed_hash="c" * 64)
        storage.upsert_audit("sample", record)
        assert storage.get_audit("sample").signed_hash == "c" * 64

    def test_list_newest_first(self, storage):
        storage.create_document(make_record("old", "2026-01-01T00:00:00+00:00"))
        storage.create_document(make_record("new", "2026-03-01T00:00:00+00:00"))
        storage.create_document(make_record("mid", "2026-02-01T00:00:00+00:00"))
        assert [r.document_id for r in storage.list_documents()] == ["new", "mid", "old"]
        assert [r.document_id for r in storage.list_documents(limit=1)] == ["new"]

    def test_delete_cascades_fields(self, storage):
        storage.create_document(make_record("doc-1"))
        storage.create_document(make_record("doc-2"))
        storage.replace_page_fields("doc-1", 1, [make_field("doc-1", 1, "A"), make_field("doc-1", 1, "B")])
        storage.replace_page_fields("doc-2", 1, [make_field("doc-2", 1, "C")])

        assert storage.delete_document("doc-1") == 2
        assert storage.get_audit("doc-1") is None
        assert storage.list_fields("doc-1") == []
        assert len(storage.list_fields("doc-2")) == 1

    def test_delete_missing(self, storage):
        with pytest.raises(NotFoundError):
            storage.delete_document("nope")


class TestFields:
    """Page-scoped field replacement."""

    def test_replace_only_touches_one_page(self, storage):
        storage.replace_page_fields("doc", 1, [make_field("doc", 1, "p1-a")])
        storage.replace_page_fields("doc", 2, [make_field("doc", 2, "p2-a"), make_field("doc", 2, "p2-b")])
        storage.replace_page_fields("doc", 1, [make_field("doc", 1, "p1-new")])

        labels = [f.label for f in storage.list_fields("doc")]
        assert labels == ["p1-new", "p2-a", "p2-b"]

    def test_empty_list_clears_page(self, storage):
        storage.replace_page_fields("doc", 1, [make_field("doc", 1, "A")])
        storage.replace_page_fields("doc", 2, [make_field("doc", 2, "B")])
        assert storage.replace_page_fields("doc", 1, []) == 0
        assert [f.label for f in storage.list_fields("doc")] == ["B"]

    def test_page_number_comes_from_call(self, storage):
        stray = make_field("doc", 7, "stray")
        storage.replace_page_fields("doc", 3, [stray])
        assert storage.list_fields("doc")[0].page_number == 3

    def test_filter_by_page(self, storage):
        storage.replace_page_fields("doc", 1, [make_field("doc", 1, "A")])
        storage.replace_page_fields("doc", 2, [make_field("doc", 2, "B")])
        assert [f.label for f in storage.list_fields("doc", page=2)] == ["B"]

    def test_order_is_page_then_created(self, storage):
        same = "2026-01-01T00:00:00+00:00"
        storage.replace_page_fields("doc", 2, [make_field("doc", 2, "p2", created_at=same)])
        storage.replace_page_fields(
            "doc",
            1,
            [
                make_field("doc", 1, "late", created_at="2026-01-02T00:00:00+00:00"),
                make_field("doc", 1, "first-tie", created_at=same),
                make_field("doc", 1, "second-tie", created_at=same),
            ],
        )
        assert [f.label for f in storage.list_fields("doc")] == ["first-tie", "second-tie", "late", "p2"]

    def test_round_trip_values(self, storage):
        f = make_field("doc", 1, "Sign here", field_type=FieldType.SIGNATURE)
        f.required = False
        storage.replace_page_fields("doc", 1, [f])
        back = storage.list_fields("doc")[0]
        assert back.id == f.id
        assert back.field_type is FieldType.SIGNATURE
        assert back.required is False
        assert (back.x_percent, back.y_percent, back.width_percent, back.height_percent) == (10, 80, 20, 5)

    def test_delete_field(self, storage):
        a, b = make_field("doc", 1, "A"), make_field("doc", 1, "B")
        storage.replace_page_fields("doc", 1, [a, b])
        storage.delete_field(a.id)
        assert [f.label for f in storage.list_fields("doc")] == ["B"]
        with pytest.raises(NotFoundError):
            storage.delete_field(a.id)

    def test_counts(self, storage):
        storage.replace_page_fields("doc", 1, [make_field("doc", 1, "A")])
        storage.replace_page_fields("other", 1, [make_field("other", 1, "B"), make_field("other", 1, "C")])
        assert storage.count_fields() == 3
        assert storage.count_fields("other") == 2

    def test_ping(self, storage):
        storage.ping()
