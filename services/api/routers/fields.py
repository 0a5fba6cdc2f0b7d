# services/api/routers/fields.py
from __future__ import annotations

import logging
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, Query

from adapters.base import StorageAdapter
from core.validation import validate_percent_rect
from dependencies import get_storage_adapter
from models import FieldDefinition
from schemas import FieldDeleteOut, FieldOut, FieldsReplace, FieldsSaveOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/fields", tags=["fields"])

Storage = Annotated[StorageAdapter, Depends(get_storage_adapter)]


@router.get("/{document_id}", response_model=List[FieldOut])
def get_fields(
    document_id: str,
    storage: Storage,
    page: Optional[int] = Query(None, ge=1, description="Only this 1-based page"),
):
    """Fields ordered by page, then creation time."""
    return [FieldOut(**f.to_api()) for f in storage.list_fields(document_id, page=page)]


@router.post("/{document_id}", response_model=FieldsSaveOut)
def save_page_fields(document_id: str, body: FieldsReplace, storage: Storage):
    """
    Replace all fields of one page.

    Fields on other pages are untouched. An empty list clears the page.
    """
    new_fields: List[FieldDefinition] = []
    for entry in body.fields:
        validate_percent_rect(entry.x_percent, entry.y_percent, entry.width_percent, entry.height_percent)
        new_fields.append(
            FieldDefinition.from_api(entry.model_dump(), document_id=document_id, page_number=body.page_number)
        )

    count = storage.replace_page_fields(document_id, body.page_number, new_fields)
    logger.info(f"Saved {count} fields for document {document_id}, page {body.page_number}")
    return FieldsSaveOut(count=count)


@router.delete("/delete/{field_id}", response_model=FieldDeleteOut)
def delete_field(field_id: str, storage: Storage):
    storage.delete_field(field_id)
    logger.info(f"Deleted field {field_id}")
    return FieldDeleteOut()
