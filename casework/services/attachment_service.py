"""Attachment service for case document uploads."""

import hashlib
import logging
import os
import uuid
from typing import BinaryIO, TypedDict

from sqlalchemy import func
from sqlalchemy.orm import Session

from casework.core.config import settings
from casework.db.enums import AttachmentStage
from casework.db.models import Case, CaseAttachment, User
from casework.services.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

MB = 1024 * 1024

IMAGE_EXTENSIONS = {"png", "jpg", "jpeg", "gif"}
PDF_EXTENSIONS = {"pdf"}
DOCUMENT_EXTENSIONS = {"doc", "docx", "xls", "xlsx", "txt", "csv"}
ALLOWED_EXTENSIONS = IMAGE_EXTENSIONS | PDF_EXTENSIONS | DOCUMENT_EXTENSIONS

ALLOWED_MIME_TYPES = {
    "application/pdf",
    "image/png",
    "image/jpeg",
    "image/gif",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "text/plain",
    "text/csv",
}

# Per-kind caps; MAX_FILE_SIZE is the hard ceiling
IMAGE_MAX_BYTES = 5 * MB
PDF_MAX_BYTES = 10 * MB
DOCUMENT_MAX_BYTES = 5 * MB

ATTACHMENTS_SUBDIR = "attachments"


class AttachmentStats(TypedDict):
    total_files: int
    total_size: int
    by_stage: dict[str, int]


# =============================================================================
# File Operations
# =============================================================================

def _extension(filename: str) -> str:
    return filename.rsplit(".", 1)[-1].lower() if "." in filename else ""


def max_size_for(filename: str) -> int:
    ext = _extension(filename)
    if ext in IMAGE_EXTENSIONS:
        limit = IMAGE_MAX_BYTES
    elif ext in PDF_EXTENSIONS:
        limit = PDF_MAX_BYTES
    else:
        limit = DOCUMENT_MAX_BYTES
    return min(limit, settings.MAX_FILE_SIZE)


def calculate_checksum(file: BinaryIO) -> str:
    """Calculate SHA-256 checksum of file."""
    sha256 = hashlib.sha256()
    file.seek(0)
    for chunk in iter(lambda: file.read(8192), b""):
        sha256.update(chunk)
    file.seek(0)
    return sha256.hexdigest()


def validate_file(filename: str, content_type: str, file_size: int) -> None:
    """Raise ValidationError unless extension, MIME type and size are allowed."""
    ext = _extension(filename)
    if ext not in ALLOWED_EXTENSIONS:
        raise ValidationError(f"File extension '.{ext}' not allowed")

    if content_type not in ALLOWED_MIME_TYPES:
        raise ValidationError(f"Content type '{content_type}' not allowed")

    limit = max_size_for(filename)
    if file_size > limit:
        raise ValidationError(f"File size exceeds {limit / MB:.0f} MB limit")


def validate_stage(stage: str) -> str:
    if stage not in AttachmentStage._value2member_map_:
        allowed = ", ".join(s.value for s in AttachmentStage)
        raise ValidationError(f"Invalid attachment stage. Allowed: {allowed}")
    return stage


def _upload_root() -> str:
    return os.path.abspath(settings.UPLOAD_DIR)


def resolve_path(attachment: CaseAttachment) -> str:
    """Absolute path of a stored file; refuses paths outside UPLOAD_DIR."""
    root = _upload_root()
    path = os.path.abspath(os.path.join(root, attachment.file_path))
    if os.path.commonpath([root, path]) != root:
        raise NotFoundError("File not found")
    if not os.path.isfile(path):
        raise NotFoundError("File not found on disk")
    return path


def store_file(relative_path: str, file: BinaryIO) -> None:
    path = os.path.join(_upload_root(), relative_path)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "wb") as f:
        file.seek(0)
        for chunk in iter(lambda: file.read(8192), b""):
            f.write(chunk)


def delete_file(relative_path: str) -> None:
    path = os.path.join(_upload_root(), relative_path)
    try:
        os.remove(path)
    except FileNotFoundError:
        logger.warning("Attachment file already missing: %s", relative_path)


# =============================================================================
# Attachments
# =============================================================================

def upload_attachment(
    db: Session,
    case: Case,
    stage: str,
    filename: str,
    content_type: str,
    file: BinaryIO,
    file_size: int,
    uploaded_by: User,
) -> CaseAttachment:
    """Validate, store under UPLOAD_DIR/attachments/<case>/<stage>/ and record."""
    validate_stage(stage)
    validate_file(filename, content_type, file_size)

    ext = _extension(filename)
    stored_name = f"{uuid.uuid4().hex}.{ext}"
    relative_path = "/".join((ATTACHMENTS_SUBDIR, str(case.id), stage, stored_name))
    checksum = calculate_checksum(file)

    store_file(relative_path, file)
    attachment = CaseAttachment(
        case_id=case.id,
        stage=stage,
        file_name=stored_name,
        original_name=os.path.basename(filename),
        file_path=relative_path,
        file_type=content_type,
        file_size=file_size,
        checksum_sha256=checksum,
        uploaded_by=uploaded_by.id,
    )
    db.add(attachment)
    try:
        db.commit()
    except Exception:
        db.rollback()
        delete_file(relative_path)
        raise
    db.refresh(attachment)
    logger.info("Attachment uploaded", extra={"case_id": case.id, "user_id": uploaded_by.id})
    return attachment


def list_attachments(db: Session, case_id: int, stage: str | None = None) -> list[CaseAttachment]:
    query = db.query(CaseAttachment).filter(CaseAttachment.case_id == case_id)
    if stage:
        query = query.filter(CaseAttachment.stage == validate_stage(stage))
    return query.order_by(CaseAttachment.created_at.desc(), CaseAttachment.id.desc()).all()


def get_attachment(db: Session, attachment_id: int) -> CaseAttachment:
    attachment = db.get(CaseAttachment, attachment_id)
    if not attachment:
        raise NotFoundError("Attachment not found")
    return attachment


def delete_attachment(db: Session, attachment: CaseAttachment) -> None:
    relative_path = attachment.file_path
    db.delete(attachment)
    db.commit()
    delete_file(relative_path)


def attachment_stats(db: Session, case_id: int) -> AttachmentStats:
    rows = (
        db.query(CaseAttachment.stage, func.count(CaseAttachment.id), func.sum(CaseAttachment.file_size))
        .filter(CaseAttachment.case_id == case_id)
        .group_by(CaseAttachment.stage)
        .all()
    )
    return {
        "total_files": sum(count for _, count, _ in rows),
        "total_size": int(sum(size or 0 for _, _, size in rows)),
        "by_stage": {stage: count for stage, count, _ in rows},
    }
