import threading
from typing import Any, Dict, Optional


class AttachmentRecoveryError(Exception):
    """Base class for pipeline failures that abort a request."""

    code = "PROCESSING_FAILED"
    stage = "processing"

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_code": self.code,
            "stage": self.stage,
            "message": str(self),
            "details": self.details,
        }


class InputMissing(AttachmentRecoveryError):
    code = "INPUT_MISSING"
    stage = "received"

    def __init__(self, message: str = "No file was uploaded.") -> None:
        super().__init__(message)


class InputTooLarge(AttachmentRecoveryError):
    code = "INPUT_TOO_LARGE"
    stage = "received"


class ExtractionError(AttachmentRecoveryError):
    code = "EXTRACTION_FAILED"
    stage = "extracting"


class MissingAttachmentsError(AttachmentRecoveryError):
    code = "ATTACHMENTS_NOT_FOUND"
    stage = "validating"

    def __init__(self, message: str = "Attachments folder not found in the GoodNotes file.") -> None:
        super().__init__(message)


class PackError(AttachmentRecoveryError):
    code = "PACK_FAILED"
    stage = "packing"


class ProcessingTimeout(AttachmentRecoveryError):
    code = "PROCESSING_TIMEOUT"


def raise_if_cancelled(cancel_event: Optional[threading.Event], stage: str) -> None:
    """Abort a blocking stage once the request deadline has passed."""
    if cancel_event is not None and cancel_event.is_set():
        raise ProcessingTimeout(f"Processing cancelled during {stage}", details={"stage": stage})
