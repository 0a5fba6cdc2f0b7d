"""
Tests for the signing orchestration (source -> rasterize -> output -> audit).

Run with: pytest tests/test_signing.py -v
"""
import asyncio
from pathlib import Path

import fitz
import pytest

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from conftest import LETTER, build_pdf, data_url
from adapters.json import JsonAdapter
from core.audit import calculate_hash
from core.errors import PersistenceError, ValidationError
from core.file_store import FileStore
from core.pdf_source import PdfSource
from core.signing import SigningLocks, SigningService
from models import (
    AuditRecord,
    FieldDefinition,
    FieldType,
    RadioValue,
    SignatureValue,
    TextValue,
)


@pytest.fixture
def env(tmp_path):
    storage = JsonAdapter(str(tmp_path / "data"))
    files = FileStore(str(tmp_path / "uploaded"), str(tmp_path / "signed"))
    source = PdfSource(cache_dir=str(tmp_path / "cache"), files=files, storage=storage)
    service = SigningService(storage, source, files)
    return service


def upload(service, document_id="doc-1", pdf=None):
    pdf = pdf or build_pdf(LETTER, LETTER)
    location = service.files.save_upload(pdf, "contract.pdf")
    service.storage.create_document(
        AuditRecord(
            document_id=document_id,
            original_hash=calculate_hash(pdf),
            original_source_location=location,
            file_name="contract.pdf",
            file_size=len(pdf),
            page_count=2,
        )
    )
    return pdf


def signed_file(service, outcome):
    return service.files.signed_dir / outcome.location.rsplit("/", 1)[1]


class TestSign:
    """Signing with values already in PDF points."""

    def test_happy_path(self, env):
        original = upload(env)
        values = [
            TextValue(x=72, y=700, width=200, height=20, page=1, text="Jane Doe"),
            SignatureValue(x=72, y=100, width=150, height=50, page=2, data_url=data_url(300, 100)),
        ]
        outcome = asyncio.run(env.sign("doc-1", values))

        assert outcome.processed == 2
        assert outcome.location.startswith("/download/doc-1-signed-")
        assert outcome.original_hash == calculate_hash(original)
        assert outcome.signed_hash == calculate_hash(outcome.pdf_bytes)

        path = signed_file(env, outcome)
        assert path.read_bytes() == outcome.pdf_bytes
        with fitz.open(path) as doc:
            assert "Jane Doe" in doc[0].get_text()
            assert len(doc[1].get_images()) == 1

        record = env.storage.get_audit("doc-1")
        assert record.signed_hash == outcome.signed_hash
        assert record.signed_output_location == outcome.location
        assert record.original_source_location.startswith("/uploaded-pdfs/")

    def test_empty_values_only(self, env):
        upload(env)
        outcome = asyncio.run(env.sign("doc-1", [TextValue(x=1, y=1, width=50, height=20, page=1, text="")]))
        assert outcome.processed == 0
        with fitz.open(stream=outcome.pdf_bytes, filetype="pdf") as doc:
            assert doc.page_count == 2

    def test_resigning_keeps_one_record(self, env):
        upload(env)
        first = asyncio.run(env.sign("doc-1", [TextValue(x=72, y=700, width=200, height=20, page=1, text="v1")]))
        second = asyncio.run(env.sign("doc-1", [TextValue(x=72, y=700, width=200, height=20, page=1, text="v2")]))

        assert env.storage.count_documents() == 1
        record = env.storage.get_audit("doc-1")
        assert record.signed_hash == second.signed_hash != first.signed_hash
        assert record.original_hash == first.original_hash == second.original_hash

    def test_unknown_document_uses_placeholder(self, env):
        outcome = asyncio.run(env.sign("sample", [RadioValue(x=100, y=100, width=20, height=20, page=1, selected=True)]))
        assert outcome.processed == 1
        assert env.storage.get_audit("sample").status == "signed"

    def test_missing_document_id(self, env):
        with pytest.raises(ValidationError):
            asyncio.run(env.sign("", []))

    def test_missing_values(self, env):
        with pytest.raises(ValidationError):
            asyncio.run(env.sign("doc-1", None))

    def test_output_write_failure(self, env, tmp_path):
        upload(env)
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("x")
        env.files.signed_dir = blocker
        with pytest.raises(PersistenceError) as exc:
            asyncio.run(env.sign("doc-1", [TextValue(x=72, y=700, width=200, height=20, page=1, text="x")]))
        assert exc.value.stage == "write_output"
        # Nothing was recorded as signed
        assert env.storage.get_audit("doc-1").signed_hash is None

    def test_audit_failure_reports_stage(self, env, monkeypatch):
        upload(env)

        def broken(document_id, record):
            raise PersistenceError("disk full", stage="storage")

        monkeypatch.setattr(env.storage, "upsert_audit", broken)
        with pytest.raises(PersistenceError) as exc:
            asyncio.run(env.sign("doc-1", [TextValue(x=72, y=700, width=200, height=20, page=1, text="x")]))
        assert exc.value.stage == "audit"
        assert exc.value.document_id == "doc-1"
        # The signed output itself was written before the audit step
        assert list(Path(env.files.signed_dir).iterdir())


class TestSignStoredFields:
    """Signing from the saved percent layout."""

    def save_fields(self, env):
        name = FieldDefinition(
            document_id="doc-1", field_type=FieldType.TEXT, page_number=1,
            x_percent=10, y_percent=85, width_percent=40, height_percent=4, label="Name",
        )
        agree = FieldDefinition(
            document_id="doc-1", field_type=FieldType.RADIO, page_number=2,
            x_percent=10, y_percent=10, width_percent=4, height_percent=3, label="Agree",
        )
        optional = FieldDefinition(
            document_id="doc-1", field_type=FieldType.DATE, page_number=2,
            x_percent=50, y_percent=10, width_percent=20, height_percent=3, label="Date", required=False,
        )
        env.storage.replace_page_fields("doc-1", 1, [name])
        env.storage.replace_page_fields("doc-1", 2, [agree, optional])
        return name, agree, optional

    def test_percent_layout_converted_per_page(self, env):
        upload(env)
        name, agree, _ = self.save_fields(env)
        outcome = asyncio.run(env.sign_stored_fields("doc-1", {name.id: "Jane Doe", agree.id: True}))

        assert outcome.processed == 2
        with fitz.open(stream=outcome.pdf_bytes, filetype="pdf") as doc:
            hits = doc[0].search_for("Jane Doe")
            assert hits
            # 10% of 612pt from the left
            assert hits[0].x0 == pytest.approx(61.2, abs=2)
            assert len(doc[1].get_drawings()) >= 2

        stored = env.storage.get_audit("doc-1").fields
        assert stored[0]["x"] == pytest.approx(61.2)
        assert stored[0]["y"] == pytest.approx(673.2)

    def test_required_field_missing(self, env):
        upload(env)
        _, agree, _ = self.save_fields(env)
        with pytest.raises(ValidationError) as exc:
            asyncio.run(env.sign_stored_fields("doc-1", {agree.id: True}))
        assert "Name" in exc.value.message

    def test_unknown_field_id(self, env):
        upload(env)
        name, _, _ = self.save_fields(env)
        with pytest.raises(ValidationError):
            asyncio.run(env.sign_stored_fields("doc-1", {name.id: "x", "f-doesnotexist": "y"}))

    def test_no_layout(self, env):
        upload(env)
        with pytest.raises(ValidationError):
            asyncio.run(env.sign_stored_fields("doc-1", {}))


class TestSigningLocks:

    def test_same_document_is_serialized(self):
        locks = SigningLocks()
        order = []

        async def worker(name):
            async with locks.hold("doc"):
                order.append(f"{name}-in")
                await asyncio.sleep(0.01)
                order.append(f"{name}-out")

        async def main():
            await asyncio.gather(worker("a"), worker("b"))

        asyncio.run(main())
        assert order in (["a-in", "a-out", "b-in", "b-out"], ["b-in", "b-out", "a-in", "a-out"])

    def test_different_documents_overlap(self):
        locks = SigningLocks()
        order = []

        async def worker(doc):
            async with locks.hold(doc):
                order.append(f"{doc}-in")
                await asyncio.sleep(0.01)
                order.append(f"{doc}-out")

        async def main():
            await asyncio.gather(worker("x"), worker("y"))

        asyncio.run(main())
        assert order[:2] == ["x-in", "y-in"]
