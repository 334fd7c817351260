"""Pydantic schemas for payment file uploads and batches."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class UploadResponse(BaseModel):
    """Summary returned after a payment file upload."""

    batch_id: UUID
    status: str = Field(..., description="pending | processing | completed | failed")
    message: str
    records_count: int = 0
    valid_count: int = 0
    invalid_count: int = 0
    applied_count: int = 0
    failed_count: int = 0
    errors_count: int = 0
    warnings_count: int = 0
    errors: list[str] = Field(default_factory=list)


class ValidationIssueResponse(BaseModel):
    row_number: int
    field: str
    message: str


class ValidationSummary(BaseModel):
    """Dry-run result of parsing and validating a file."""

    file_name: str
    file_type: str
    fingerprint: str
    duplicate: bool
    existing_batch_id: Optional[UUID] = None
    header_mapping: dict[str, str]
    records_count: int
    valid_count: int
    invalid_count: int
    errors: list[ValidationIssueResponse] = Field(default_factory=list)
    warnings: list[ValidationIssueResponse] = Field(default_factory=list)


class DuplicateCheckResponse(BaseModel):
    exists: bool
    existing_batch_id: Optional[UUID] = None


class BatchResponse(BaseModel):
    """Schema returned when reading a payment file batch."""

    id: UUID
    file_name: str
    file_size: int
    file_type: str
    file_hash: str
    status: str
    uploaded_by: Optional[str] = None
    upload_year: Optional[int] = None
    upload_month: Optional[int] = None
    upload_week: Optional[int] = None
    records_count: int = 0
    valid_count: int = 0
    invalid_count: int = 0
    applied_count: int = 0
    failed_count: int = 0
    errors_count: int = 0
    warnings_count: int = 0
    error_messages: Optional[list[str]] = None
    error_detail: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    duration_ms: Optional[int] = None
    metadata_json: Optional[dict[str, Any]] = Field(None, serialization_alias="metadata")
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
