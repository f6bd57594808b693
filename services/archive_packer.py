import io
import threading
import zipfile
from pathlib import Path
from typing import Optional, Union

from config.settings import settings
from utils.exceptions import PackError, raise_if_cancelled
from utils.logger import get_logger

logger = get_logger(__name__)


class ArchivePacker:
    """Bundles a flat directory of renamed files into one zip archive."""

    def __init__(self, compression_level: int = settings.COMPRESSION_LEVEL) -> None:
        self.compression_level = compression_level

    def pack(
        self,
        source_dir: Union[str, Path],
        cancel_event: Optional[threading.Event] = None,
    ) -> bytes:
        """
        Compress every regular file directly under ``source_dir``.

        The archive is closed (central directory written) before the bytes are
        returned, so callers always receive a complete stream.
        """
        source = Path(source_dir)
        buffer = io.BytesIO()

        try:
            files = sorted(p for p in source.iterdir() if p.is_file())
            with zipfile.ZipFile(
                buffer,
                mode="w",
                compression=zipfile.ZIP_DEFLATED,
                compresslevel=self.compression_level,
            ) as zf:
                for path in files:
                    raise_if_cancelled(cancel_event, "packing")
                    zf.write(path, arcname=path.name)
        except (OSError, ValueError, zipfile.LargeZipFile) as exc:
            raise PackError(f"Failed to build output archive: {exc}") from exc

        data = buffer.getvalue()
        logger.info("Created zip file | entries=%s | size=%s", len(files), len(data))
        return data
