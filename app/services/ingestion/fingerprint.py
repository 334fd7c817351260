"""Content fingerprinting for whole-file duplicate detection."""

from __future__ import annotations

import hashlib
import uuid
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.payment_file import FileBatch

_CHUNK_SIZE = 64 * 1024


class DuplicateFileError(Exception):
    """The uploaded bytes were already accepted as an earlier batch."""

    def __init__(self, fingerprint: str, existing_batch_id: Optional[uuid.UUID]):
        self.fingerprint = fingerprint
        self.existing_batch_id = existing_batch_id
        super().__init__(f"File already processed (batch {existing_batch_id})")


@dataclass(frozen=True)
class DuplicateCheck:
    exists: bool
    existing_batch_id: Optional[uuid.UUID] = None


def compute_fingerprint(content: bytes) -> str:
    """SHA-256 hex digest of the raw upload bytes."""
    digest = hashlib.sha256()
    view = memoryview(content)
    for offset in range(0, len(view), _CHUNK_SIZE):
        digest.update(view[offset : offset + _CHUNK_SIZE])
    return digest.hexdigest()


def find_batch_by_fingerprint(db: Session, fingerprint: str) -> Optional[FileBatch]:
    stmt = select(FileBatch).where(FileBatch.file_hash == fingerprint)
    return db.execute(stmt).scalar_one_or_none()


def check_duplicate(db: Session, fingerprint: str) -> DuplicateCheck:
    """Look up a fingerprint without side effects."""
    batch = find_batch_by_fingerprint(db, fingerprint)
    if batch is None:
        return DuplicateCheck(exists=False)
    return DuplicateCheck(exists=True, existing_batch_id=batch.id)
