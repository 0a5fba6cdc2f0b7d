"""
Pydantic schemas for documents.
"""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UploadOut(CamelModel):
    """Response to a PDF upload."""
    success: bool = True
    document_id: str = Field(..., description="Generated document ID (doc-<ms>-<rand>)")
    pdf_url: str = Field(..., description="Where the uploaded original is served")
    file_name: str
    file_size: int = Field(..., ge=0, description="Size in bytes")
    page_count: int = Field(..., ge=1)
    hash: str = Field(..., description="SHA-256 of the uploaded bytes")
    message: str = "PDF uploaded successfully"


class DocumentSummary(CamelModel):
    """One entry of the document list."""
    id: str
    hash: str = Field(..., description="Original hash")
    url: Optional[str] = Field(None, description="Original source location")
    file_name: str = "Unknown"
    file_size: int = 0
    page_count: int = 0
    created_at: Optional[str] = None
    signed_at: Optional[str] = None
    status: str = Field(..., description="'signed' or 'pending'")


class DocumentDetail(DocumentSummary):
    field_count: int = 0
    signed_hash: Optional[str] = None
    download_url: Optional[str] = Field(None, description="Latest signed output")


class DocumentListOut(CamelModel):
    success: bool = True
    count: int
    documents: List[DocumentSummary] = Field(default_factory=list)


class DocumentDetailOut(CamelModel):
    success: bool = True
    document: DocumentDetail


class DocumentDeleteOut(CamelModel):
    success: bool = True
    message: str = "Document and associated files deleted successfully"
    deleted_fields: int = 0


class PageGeometryOut(CamelModel):
    """Geometry of one page at a given render width."""
    page_number: int = Field(..., ge=1)
    width_points: float = Field(..., gt=0)
    height_points: float = Field(..., gt=0)
    width_pixels: float = Field(..., gt=0)
    height_pixels: float = Field(..., gt=0)
    scale: float = Field(..., gt=0, description="Pixels per point")
