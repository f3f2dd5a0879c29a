"""Attachment endpoints for case document uploads and downloads."""

from io import BytesIO
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from casework.core.deps import get_db, require_permission
from casework.db.models import Case, User
from casework.schemas.attachment import AttachmentRead, AttachmentStatsRead
from casework.services import attachment_service, case_service

router = APIRouter()


def _get_case_with_access(db: Session, case_id: int, user: User) -> Case:
    case = case_service.get_case(db, case_id)
    case_service.authorize_case_access(db, user, case)
    return case


# =============================================================================
# Endpoints
# =============================================================================

@router.post("/upload/{case_id}", response_model=AttachmentRead, status_code=201)
async def upload_attachment(
    case_id: int,
    file: Annotated[UploadFile, File()],
    stage: Annotated[str, Form()],
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("attachments.upload")),
):
    """
    Upload a document for one of the case's stages.

    Images and documents are capped at 5 MB, PDFs at 10 MB.
    """
    case = _get_case_with_access(db, case_id, user)

    content = await file.read()
    return attachment_service.upload_attachment(
        db,
        case,
        stage,
        filename=file.filename or "untitled",
        content_type=file.content_type or "application/octet-stream",
        file=BytesIO(content),
        file_size=len(content),
        uploaded_by=user,
    )


@router.get("/case/{case_id}", response_model=list[AttachmentRead])
def list_attachments(
    case_id: int,
    stage: str | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("attachments.read")),
):
    _get_case_with_access(db, case_id, user)
    return attachment_service.list_attachments(db, case_id, stage=stage)


@router.get("/stats/{case_id}", response_model=AttachmentStatsRead)
def get_stats(
    case_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("attachments.read")),
):
    _get_case_with_access(db, case_id, user)
    return attachment_service.attachment_stats(db, case_id)


@router.get("/download/{attachment_id}")
def download_attachment(
    attachment_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("attachments.read")),
):
    attachment = attachment_service.get_attachment(db, attachment_id)
    _get_case_with_access(db, attachment.case_id, user)
    return FileResponse(
        attachment_service.resolve_path(attachment),
        media_type=attachment.file_type,
        filename=attachment.original_name,
    )


@router.delete("/{attachment_id}", status_code=204)
def delete_attachment(
    attachment_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("attachments.delete")),
):
    attachment = attachment_service.get_attachment(db, attachment_id)
    _get_case_with_access(db, attachment.case_id, user)
    attachment_service.delete_attachment(db, attachment)
