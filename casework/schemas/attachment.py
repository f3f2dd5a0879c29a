"""Pydantic schemas for case attachments."""

from datetime import datetime

from pydantic import BaseModel


class AttachmentRead(BaseModel):
    id: int
    case_id: int
    stage: str
    file_name: str
    original_name: str
    file_type: str
    file_size: int
    checksum_sha256: str | None
    uploaded_by: int | None
    created_at: datetime

    model_config = {"from_attributes": True}


class AttachmentStatsRead(BaseModel):
    total_files: int
    total_size: int
    by_stage: dict[str, int]
