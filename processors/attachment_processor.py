"""
AttachmentProcessor module

Walks the ``attachments`` directory of an extracted container, classifies every
file by its leading bytes and copies the recognised ones into an output
directory under ``<stem>.<tag>``.

Per-file problems never abort the batch:
- no matching signature -> outcome ``skipped`` (logged as a warning)
- file cannot be read   -> outcome ``unreadable`` (logged as a warning)

Two attachments resolving to the same output name are not disambiguated: the
later one overwrites the earlier, and the earlier outcome is flagged
``overwritten`` so the report matches the output set.
"""

import threading
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Union

import filetype

from config.settings import settings
from services.file_hashing import FileHashingService
from services.signature_classifier import SignatureClassifier
from utils.exceptions import MissingAttachmentsError, raise_if_cancelled
from utils.logger import get_logger

logger = get_logger(__name__)


class AttachmentStatus(str, Enum):
    CLASSIFIED = "classified"
    SKIPPED = "skipped"
    UNREADABLE = "unreadable"


@dataclass(frozen=True)
class ClassifiedAttachment:
    """Outcome for one attachment; ``tag`` is None when unresolved."""

    name: str
    status: AttachmentStatus
    tag: Optional[str] = None
    output_name: Optional[str] = None
    size_bytes: int = 0
    sha256: Optional[str] = None
    hint: Optional[str] = None
    overwritten: bool = False
    error: Optional[str] = None

    @property
    def resolved(self) -> bool:
        return self.tag is not None


@dataclass
class ProcessingReport:
    outcomes: List[ClassifiedAttachment] = field(default_factory=list)

    @property
    def classified_count(self) -> int:
        return sum(1 for o in self.outcomes if o.status is AttachmentStatus.CLASSIFIED)

    @property
    def skipped_count(self) -> int:
        return sum(1 for o in self.outcomes if o.status is not AttachmentStatus.CLASSIFIED)

    @property
    def output_names(self) -> List[str]:
        return sorted(
            o.output_name
            for o in self.outcomes
            if o.status is AttachmentStatus.CLASSIFIED and not o.overwritten and o.output_name
        )


def resolve_attachments_dir(
    extract_root: Union[str, Path],
    dir_name: str = settings.ATTACHMENTS_DIR_NAME,
) -> Path:
    """Return the top-level attachments directory or raise MissingAttachmentsError."""
    candidate = Path(extract_root) / dir_name
    if not candidate.is_dir():
        raise MissingAttachmentsError()
    return candidate


def renamed_filename(original_name: str, tag: str) -> str:
    # Drop everything from the last dot, unless the name only starts with one
    name = Path(original_name).name
    dot = name.rfind(".")
    stem = name[:dot] if dot > 0 else name
    return f"{stem}.{tag}"


class AttachmentProcessor:

    def __init__(
        self,
        classifier: Optional[SignatureClassifier] = None,
        hashing: Optional[FileHashingService] = None,
    ) -> None:
        self.classifier = classifier or SignatureClassifier()
        self.hashing = hashing or FileHashingService()

    def process(
        self,
        attachments_dir: Union[str, Path],
        output_dir: Union[str, Path],
        cancel_event: Optional[threading.Event] = None,
    ) -> int:
        """Classify and copy attachments; returns the number of classified files."""
        return self.process_with_report(attachments_dir, output_dir, cancel_event).classified_count

    def process_with_report(
        self,
        attachments_dir: Union[str, Path],
        output_dir: Union[str, Path],
        cancel_event: Optional[threading.Event] = None,
    ) -> ProcessingReport:
        source = Path(attachments_dir)
        target = Path(output_dir)
        target.mkdir(exist_ok=True)

        # Directory-level failures (missing / unreadable folder) propagate
        entries = sorted(p for p in source.iterdir() if p.is_file())
        logger.info("Files in attachments folder: %s", [p.name for p in entries])

        report = ProcessingReport()
        written: Dict[str, int] = {}

        for path in entries:
            raise_if_cancelled(cancel_event, "processing")
            outcome = self._process_file(path, target)

            if outcome.status is AttachmentStatus.CLASSIFIED and outcome.output_name:
                previous = written.get(outcome.output_name)
                if previous is not None:
                    logger.warning(
                        "Output name collision | name=%s | overwritten_by=%s",
                        outcome.output_name,
                        outcome.name,
                    )
                    report.outcomes[previous] = replace(report.outcomes[previous], overwritten=True)
                written[outcome.output_name] = len(report.outcomes)

            report.outcomes.append(outcome)

        logger.info(
            "Attachment processing finished | classified=%s | skipped=%s",
            report.classified_count,
            report.skipped_count,
        )
        return report

    def _process_file(self, path: Path, output_dir: Path) -> ClassifiedAttachment:
        try:
            content = path.read_bytes()
        except OSError as exc:
            logger.warning("Could not read attachment | name=%s | error=%s", path.name, exc)
            return ClassifiedAttachment(
                name=path.name,
                status=AttachmentStatus.UNREADABLE,
                error=str(exc),
            )

        tag = self.classifier.classify(content)

        if tag is None:
            hint = self._guess_hint(content)
            logger.warning("Could not determine file type for: %s | hint=%s", path.name, hint)
            return ClassifiedAttachment(
                name=path.name,
                status=AttachmentStatus.SKIPPED,
                size_bytes=len(content),
                hint=hint,
            )

        new_name = renamed_filename(path.name, tag)
        (output_dir / new_name).write_bytes(content)
        logger.info("Renamed and copied file to: %s", new_name)

        return ClassifiedAttachment(
            name=path.name,
            status=AttachmentStatus.CLASSIFIED,
            tag=tag,
            output_name=new_name,
            size_bytes=len(content),
            sha256=self.hashing.hash_bytes(content),
        )

    @staticmethod
    def _guess_hint(content: bytes) -> Optional[str]:
        # Diagnostic only; never used to include a file
        kind = filetype.guess(content[:8192]) if content else None
        return kind.extension if kind else None
