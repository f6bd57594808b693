from typing import List, Optional

from pydantic import BaseModel


class AttachmentOutcome(BaseModel):
    name: str
    status: str
    tag: Optional[str] = None
    output_name: Optional[str] = None
    size_bytes: int = 0
    sha256: Optional[str] = None
    hint: Optional[str] = None
    overwritten: bool = False
    error: Optional[str] = None


class ProcessingReportResponse(BaseModel):
    status: str
    request_id: str
    filename: str
    files_processed: int
    files_skipped: int
    output_files: List[str]
    archive_size: int
    archive_sha256: str
    attachments: List[AttachmentOutcome]


class HealthResponse(BaseModel):
    status: str
    service: str
