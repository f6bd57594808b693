from typing import Optional

from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.responses import HTMLResponse, Response
import uvicorn

from config.settings import settings
from models.schemas import AttachmentOutcome, HealthResponse, ProcessingReportResponse
from utils.exceptions import (
    AttachmentRecoveryError,
    ExtractionError,
    InputMissing,
    InputTooLarge,
    MissingAttachmentsError,
    PackError,
    ProcessingTimeout,
)
from utils.logger import get_logger
from workflows.attachment_recovery import AttachmentRecoveryWorkflow, RecoveryResult

app = FastAPI(title="Attachment Recovery Service", version="1.0.0")
logger = get_logger(__name__)

# Initialize workflow
workflow = AttachmentRecoveryWorkflow()

ERROR_STATUS = {
    InputMissing: 400,
    InputTooLarge: 413,
    ExtractionError: 422,
    MissingAttachmentsError: 422,
    PackError: 500,
    ProcessingTimeout: 504,
}

UPLOAD_FORM = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>GoodNotes File Processor</title>
    <style>
        body { font-family: Arial, sans-serif; display: flex; justify-content: center;
               align-items: center; height: 100vh; margin: 0; background-color: #f4f4f9; }
        .container { text-align: center; background: #fff; padding: 20px; border-radius: 8px;
                     box-shadow: 0 4px 6px rgba(0, 0, 0, 0.1); }
        label { display: block; margin-bottom: 10px; }
        input[type="file"] { margin-bottom: 15px; }
    </style>
</head>
<body>
    <div class="container">
        <h1>GoodNotes File Processor</h1>
        <form action="/upload" method="POST" enctype="multipart/form-data">
            <label for="file">Upload a .goodnotes file:</label>
            <input type="file" name="file" id="file" accept=".goodnotes" required>
            <button type="submit">Process File</button>
        </form>
    </div>
</body>
</html>
"""


async def _run_workflow(file: Optional[UploadFile]) -> RecoveryResult:
    try:
        if file is None:
            raise InputMissing()
        # One byte past the limit is enough to reject an oversized upload
        container_data = await file.read(workflow.max_upload_size + 1)
        return await workflow.run(container_data, original_filename=file.filename)

    except AttachmentRecoveryError as exc:
        status_code = ERROR_STATUS.get(type(exc), 500)
        raise HTTPException(status_code=status_code, detail=exc.to_dict()) from exc
    except Exception as exc:
        logger.error("Error during processing: %s", exc, exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=AttachmentRecoveryError("An error occurred while processing the file.").to_dict(),
        ) from exc


@app.get("/", response_class=HTMLResponse)
async def upload_form():
    """
    Browser upload form
    """
    return UPLOAD_FORM


@app.post("/upload")
async def upload(file: Optional[UploadFile] = File(default=None)):
    """
    Extract, identify and rename attachments; respond with the repacked archive
    """
    result = await _run_workflow(file)

    return Response(
        content=result.archive,
        media_type="application/zip",
        headers={
            "Content-Disposition": f'attachment; filename="{result.filename}"',
            "X-Files-Processed": str(result.report.classified_count),
            "X-Files-Skipped": str(result.report.skipped_count),
        },
    )


@app.post("/process/report", response_model=ProcessingReportResponse)
async def process_report(file: Optional[UploadFile] = File(default=None)):
    """
    Same pipeline as /upload, but returns the per-attachment report
    """
    result = await _run_workflow(file)
    report = result.report

    return ProcessingReportResponse(
        status="ready",
        request_id=result.request_id,
        filename=result.filename,
        files_processed=report.classified_count,
        files_skipped=report.skipped_count,
        output_files=report.output_names,
        archive_size=len(result.archive),
        archive_sha256=result.archive_sha256,
        attachments=[
            AttachmentOutcome(
                name=o.name,
                status=o.status.value,
                tag=o.tag,
                output_name=o.output_name,
                size_bytes=o.size_bytes,
                sha256=o.sha256,
                hint=o.hint,
                overwritten=o.overwritten,
                error=o.error,
            )
            for o in report.outcomes
        ],
    )


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Health check endpoint
    """
    return HealthResponse(status="healthy", service="attachment-recovery")


if __name__ == "__main__":
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
