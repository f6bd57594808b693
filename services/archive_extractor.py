"""
Archive Extractor

Unpacks an uploaded container (a renamed zip) into a working directory.
Entries that would land outside the destination, encrypted entries and
archives with an unreasonable number of entries are rejected.
"""

import io
import shutil
import threading
import zipfile
import zlib
from pathlib import Path
from typing import Optional, Set, Union

from config.settings import settings
from utils.exceptions import AttachmentRecoveryError, ExtractionError, raise_if_cancelled
from utils.logger import get_logger

logger = get_logger(__name__)


class ArchiveExtractor:

    def __init__(self, max_entries: int = settings.MAX_ARCHIVE_ENTRIES) -> None:
        self.max_entries = max_entries

    def extract(
        self,
        container_data: bytes,
        destination_dir: Union[str, Path],
        cancel_event: Optional[threading.Event] = None,
    ) -> Set[Path]:
        """
        Decompress ``container_data`` under ``destination_dir``.

        Returns:
            Set of paths of every extracted regular file.

        Raises:
            ExtractionError: the container is not a zip archive or a member
            could not be decompressed.
            ProcessingTimeout: ``cancel_event`` was set between members.
        """
        destination = Path(destination_dir).resolve()
        # Never create missing parents: a removed workspace must stay removed
        destination.mkdir(exist_ok=True)

        try:
            with zipfile.ZipFile(io.BytesIO(container_data)) as zf:
                members = zf.infolist()
                if len(members) > self.max_entries:
                    raise ExtractionError(
                        f"Container holds too many entries ({len(members)})",
                        details={"max_entries": self.max_entries},
                    )

                extracted: Set[Path] = set()
                for member in members:
                    raise_if_cancelled(cancel_event, "extracting")
                    target = self._safe_target(destination, member.filename)

                    if member.is_dir():
                        self._make_dirs(destination, target)
                        continue

                    if member.flag_bits & 0x1:
                        raise ExtractionError(
                            f"Encrypted entry not supported: {member.filename}",
                            details={"entry": member.filename},
                        )

                    self._make_dirs(destination, target.parent)
                    with zf.open(member) as src, open(target, "wb") as dst:
                        shutil.copyfileobj(src, dst)
                    extracted.add(target)

        except AttachmentRecoveryError:
            raise
        except zipfile.BadZipFile as exc:
            raise ExtractionError(f"Container is not a valid archive: {exc}") from exc
        except (zlib.error, EOFError, NotImplementedError, RuntimeError, OSError) as exc:
            raise ExtractionError(f"Decompression failed: {exc}") from exc

        logger.info(
            "Extraction completed | destination=%s | files=%s",
            destination,
            sorted(str(p.relative_to(destination)) for p in extracted),
        )
        return extracted

    @staticmethod
    def _make_dirs(destination: Path, directory: Path) -> None:
        current = destination
        for part in directory.relative_to(destination).parts:
            current = current / part
            current.mkdir(exist_ok=True)

    @staticmethod
    def _safe_target(destination: Path, entry_name: str) -> Path:
        target = (destination / entry_name).resolve()
        if target != destination and destination not in target.parents:
            raise ExtractionError(
                f"Entry escapes extraction directory: {entry_name}",
                details={"entry": entry_name},
            )
        return target
