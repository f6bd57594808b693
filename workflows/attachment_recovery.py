import asyncio
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from config.settings import settings
from processors.attachment_processor import (
    AttachmentProcessor,
    ProcessingReport,
    resolve_attachments_dir,
)
from services.archive_extractor import ArchiveExtractor
from services.archive_packer import ArchivePacker
from services.file_hashing import FileHashingService
from services.workspace import RequestWorkspace
from utils.exceptions import (
    AttachmentRecoveryError,
    InputMissing,
    InputTooLarge,
    ProcessingTimeout,
)
from utils.logger import get_logger

logger = get_logger(__name__)


class PipelineStage(str, Enum):
    RECEIVED = "received"
    EXTRACTING = "extracting"
    VALIDATING = "validating"
    PROCESSING = "processing"
    PACKING = "packing"
    READY = "ready"


@dataclass(frozen=True)
class RecoveryResult:
    archive: bytes
    filename: str
    report: ProcessingReport
    archive_sha256: str
    request_id: str


class AttachmentRecoveryWorkflow:
    """Extract -> validate -> classify/rename -> repack, one request at a time."""

    def __init__(
        self,
        extractor: Optional[ArchiveExtractor] = None,
        processor: Optional[AttachmentProcessor] = None,
        packer: Optional[ArchivePacker] = None,
        hashing: Optional[FileHashingService] = None,
        work_root: Optional[str] = settings.WORK_ROOT,
        attachments_dir_name: str = settings.ATTACHMENTS_DIR_NAME,
        output_filename: str = settings.OUTPUT_ARCHIVE_NAME,
        max_upload_size: int = settings.MAX_UPLOAD_SIZE,
        timeout: Optional[float] = settings.PROCESSING_TIMEOUT,
    ) -> None:
        self.hashing = hashing or FileHashingService()
        self.extractor = extractor or ArchiveExtractor()
        self.processor = processor or AttachmentProcessor(hashing=self.hashing)
        self.packer = packer or ArchivePacker()
        self.work_root = work_root
        self.attachments_dir_name = attachments_dir_name
        self.output_filename = output_filename
        self.max_upload_size = max_upload_size
        self.timeout = timeout

    async def run(self, container_data: Optional[bytes], original_filename: Optional[str] = None) -> RecoveryResult:
        """
        Run the full pipeline for one uploaded container.

        All stages, including workspace cleanup, run inside one worker thread.
        On a deadline the thread is told to stop and is awaited, so the
        workspace is gone before ProcessingTimeout reaches the caller.

        Raises:
            InputMissing, InputTooLarge, ExtractionError, MissingAttachmentsError,
            PackError, ProcessingTimeout
        """
        if not container_data:
            raise InputMissing()

        if len(container_data) > self.max_upload_size:
            raise InputTooLarge(
                f"Upload exceeds {self.max_upload_size} bytes",
                details={"size": len(container_data), "max_size": self.max_upload_size},
            )

        logger.info(
            "Upload received | filename=%s | size=%s",
            original_filename,
            len(container_data),
        )

        cancel_event = threading.Event()
        pipeline = asyncio.ensure_future(
            asyncio.to_thread(self._run_pipeline, container_data, original_filename, cancel_event)
        )

        try:
            if self.timeout is None:
                archive, report, request_id = await asyncio.shield(pipeline)
            else:
                archive, report, request_id = await asyncio.wait_for(
                    asyncio.shield(pipeline), timeout=self.timeout
                )
        except asyncio.TimeoutError as exc:
            logger.error("Processing deadline exceeded | filename=%s | timeout=%s", original_filename, self.timeout)
            cancel_event.set()
            await self._drain(pipeline)
            raise ProcessingTimeout(
                f"Processing exceeded {self.timeout} seconds",
                details={"timeout": self.timeout},
            ) from exc
        except asyncio.CancelledError:
            # Client went away; the worker still removes its workspace
            cancel_event.set()
            raise

        archive_hash = await self.hashing.hash_file(archive)
        logger.info(
            "Request %s | request_id=%s | files=%s | archive_sha256=%s",
            PipelineStage.READY.value,
            request_id,
            report.classified_count,
            archive_hash,
        )

        return RecoveryResult(
            archive=archive,
            filename=self.output_filename,
            report=report,
            archive_sha256=archive_hash,
            request_id=request_id,
        )

    @staticmethod
    async def _drain(pipeline: "asyncio.Future") -> None:
        """Wait for a cancelled worker to unwind; its own outcome is superseded."""
        try:
            await pipeline
        except ProcessingTimeout:
            pass
        except AttachmentRecoveryError as exc:
            logger.warning("Stage failed while stopping for deadline: %s", exc)

    def _run_pipeline(
        self,
        container_data: bytes,
        original_filename: Optional[str],
        cancel_event: threading.Event,
    ) -> Tuple[bytes, ProcessingReport, str]:
        stage = PipelineStage.RECEIVED

        with RequestWorkspace(original_filename, root=self.work_root) as workspace:
            try:
                stage = PipelineStage.EXTRACTING
                self.extractor.extract(container_data, workspace.extract_dir, cancel_event)

                stage = PipelineStage.VALIDATING
                attachments_dir = resolve_attachments_dir(workspace.extract_dir, self.attachments_dir_name)

                stage = PipelineStage.PROCESSING
                report = self.processor.process_with_report(attachments_dir, workspace.output_dir, cancel_event)

                stage = PipelineStage.PACKING
                archive = self.packer.pack(workspace.output_dir, cancel_event)

            except AttachmentRecoveryError as exc:
                logger.error(
                    "Request failed | request_id=%s | stage=%s | reason=%s",
                    workspace.request_id,
                    stage.value,
                    exc,
                )
                raise
            except Exception as exc:
                logger.error(
                    "Error during processing | request_id=%s | stage=%s | reason=%s",
                    workspace.request_id,
                    stage.value,
                    exc,
                    exc_info=True,
                )
                raise

            return archive, report, workspace.request_id
