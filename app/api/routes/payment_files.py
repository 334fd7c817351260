"""Payment file ingestion endpoints.

Handles uploads of CSV, XLSX and XLS payment files, dry-run validation,
duplicate checks, batch status polling, and the producer template.
"""

from typing import List, Optional
from uuid import UUID

from fastapi import (
    APIRouter,
    BackgroundTasks,
    Depends,
    File,
    HTTPException,
    Query,
    UploadFile,
)
from fastapi.responses import Response
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import SessionLocal, get_db
from app.core.logging import get_logger
from app.models.payment_file import FileBatch
from app.schemas.payment_file import (
    BatchResponse,
    DuplicateCheckResponse,
    UploadResponse,
    ValidationIssueResponse,
    ValidationSummary,
)
from app.services.ingestion.base_parser import (
    BaseTableParser,
    TableParseError,
    UnsupportedFormatError,
)
from app.services.ingestion.fingerprint import (
    DuplicateFileError,
    check_duplicate,
    compute_fingerprint,
)
from app.services.ingestion.header_mapper import map_headers
from app.services.ingestion.normalizer import normalize_rows
from app.services.ingestion.registry import get_parser
from app.services.ingestion.template import TEMPLATE_FILENAME, build_template_csv
from app.services.ingestion.validator import validate_records
from app.services.ledger.batch import BatchOrchestrator, submit_ingestion_job
from app.services.notifications import Notifier, get_notifier

logger = get_logger(__name__)

router = APIRouter()


async def _read_upload(file: UploadFile) -> tuple[bytes, str, BaseTableParser]:
    """Read an upload and reject empty, oversized, or unsupported files."""
    filename = file.filename or "unknown"
    try:
        parser = get_parser(filename, file.content_type)
    except UnsupportedFormatError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    content = await file.read(settings.max_upload_size_bytes + 1)
    if not content:
        raise HTTPException(status_code=400, detail="Uploaded file is empty.")
    if len(content) > settings.max_upload_size_bytes:
        raise HTTPException(
            status_code=413,
            detail=(
                f"File exceeds the {settings.max_upload_size_bytes // (1024 * 1024)}MB "
                "upload limit."
            ),
        )
    return content, filename, parser


def _duplicate_conflict(exc: DuplicateFileError) -> HTTPException:
    return HTTPException(
        status_code=409,
        detail={
            "message": "File already processed",
            "existing_batch_id": (
                str(exc.existing_batch_id) if exc.existing_batch_id else None
            ),
        },
    )


def _upload_response(batch: FileBatch, message: str) -> UploadResponse:
    return UploadResponse(
        batch_id=batch.id,
        status=batch.status,
        message=message,
        records_count=batch.records_count or 0,
        valid_count=batch.valid_count or 0,
        invalid_count=batch.invalid_count or 0,
        applied_count=batch.applied_count or 0,
        failed_count=batch.failed_count or 0,
        errors_count=batch.errors_count or 0,
        warnings_count=batch.warnings_count or 0,
        errors=batch.error_messages or [],
    )


@router.post("/upload", response_model=UploadResponse)
async def upload_payment_file(
    background_tasks: BackgroundTasks,
    file: UploadFile = File(...),
    background: bool = Query(
        False, description="Accept now and process in the background"
    ),
    uploaded_by: Optional[str] = Query(None, max_length=100),
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> UploadResponse:
    """Upload a payment file and apply its payments to the ledger.

    The same bytes are only ever accepted once.  With ``background=true``
    the response carries the pending batch id to poll.
    """
    content, filename, _ = await _read_upload(file)
    logger.info("Received upload: file=%s size=%d", filename, len(content))

    try:
        if background:
            batch = submit_ingestion_job(
                SessionLocal,
                db,
                content,
                filename,
                file.content_type,
                uploaded_by,
                background_tasks,
                notifier,
            )
            return _upload_response(batch, f"Accepted {filename} for processing")

        batch = BatchOrchestrator(db, settings, notifier).ingest(
            content, filename, file.content_type, uploaded_by
        )
    except DuplicateFileError as exc:
        raise _duplicate_conflict(exc)

    if batch.status == "failed":
        message = f"Processing {filename} failed: {batch.error_detail}"
    else:
        message = (
            f"Processed {batch.records_count} records from {filename}: "
            f"{batch.applied_count} applied, {batch.failed_count} failed, "
            f"{batch.invalid_count} invalid"
        )
    return _upload_response(batch, message)


@router.post("/validate", response_model=ValidationSummary)
async def validate_payment_file(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
) -> ValidationSummary:
    """Parse and validate a file without touching the ledger."""
    content, filename, parser = await _read_upload(file)
    fingerprint = compute_fingerprint(content)
    duplicate = check_duplicate(db, fingerprint)

    try:
        table = parser.parse(content, filename)
        mapped = map_headers(table.header)
        result = validate_records(normalize_rows(table.rows, mapped, table.header))
    except TableParseError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    def _issues(issues) -> List[ValidationIssueResponse]:
        return [
            ValidationIssueResponse(
                row_number=i.row_number, field=i.field, message=i.message
            )
            for i in issues
        ]

    return ValidationSummary(
        file_name=filename,
        file_type=parser.file_type,
        fingerprint=fingerprint,
        duplicate=duplicate.exists,
        existing_batch_id=duplicate.existing_batch_id,
        header_mapping=dict(zip(table.header, mapped)),
        records_count=result.total,
        valid_count=len(result.valid_records),
        invalid_count=len(result.invalid_records),
        errors=_issues(result.errors),
        warnings=_issues(result.warnings),
    )


@router.get("/check-duplicate", response_model=DuplicateCheckResponse)
def check_duplicate_fingerprint(
    fingerprint: str = Query(..., min_length=64, max_length=64),
    db: Session = Depends(get_db),
) -> DuplicateCheckResponse:
    """Tell whether a file with this SHA-256 fingerprint was already accepted."""
    result = check_duplicate(db, fingerprint.lower())
    return DuplicateCheckResponse(
        exists=result.exists, existing_batch_id=result.existing_batch_id
    )


@router.get("/batches", response_model=List[BatchResponse])
def list_batches(
    status: Optional[str] = Query(None, description="Filter by batch status"),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
) -> list[FileBatch]:
    """List payment file batches, newest first."""
    query = db.query(FileBatch)
    if status:
        query = query.filter(FileBatch.status == status)
    return query.order_by(FileBatch.created_at.desc()).limit(limit).all()


@router.get("/batches/{batch_id}", response_model=BatchResponse)
def get_batch(
    batch_id: UUID,
    db: Session = Depends(get_db),
) -> FileBatch:
    """Get one batch by id (poll this after a background upload)."""
    batch = db.get(FileBatch, batch_id)
    if batch is None:
        raise HTTPException(status_code=404, detail="Batch not found")
    return batch


@router.get("/template")
def download_template() -> Response:
    """CSV template with every recognised column and one example row."""
    return Response(
        content=build_template_csv(),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{TEMPLATE_FILENAME}"'},
    )
