import re
import shutil
import tempfile
import uuid
from pathlib import Path
from typing import Optional

from config.settings import settings
from utils.logger import get_logger

logger = get_logger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class RequestWorkspace:
    """
    Working directory owned by exactly one request.

    Use as a context manager; the directory tree is removed on exit whether the
    request succeeded or failed.
    """

    def __init__(self, original_filename: Optional[str] = None, root: Optional[str] = settings.WORK_ROOT) -> None:
        self.request_id = uuid.uuid4().hex
        self.original_filename = original_filename
        self._root = root or None
        self.path: Optional[Path] = None

    @property
    def extract_dir(self) -> Path:
        return self._require_path() / "extracted"

    @property
    def output_dir(self) -> Path:
        return self._require_path() / "processed"

    def __enter__(self) -> "RequestWorkspace":
        if self._root:
            Path(self._root).mkdir(parents=True, exist_ok=True)
        self.path = Path(tempfile.mkdtemp(prefix=self._prefix(), dir=self._root))
        self.extract_dir.mkdir()
        self.output_dir.mkdir()
        logger.info("Workspace created | request_id=%s | path=%s", self.request_id, self.path)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()

    def cleanup(self) -> None:
        if self.path is None:
            return
        shutil.rmtree(self.path, ignore_errors=True)
        logger.info("Temporary files cleaned up | request_id=%s", self.request_id)
        self.path = None

    def _prefix(self) -> str:
        stem = Path(self.original_filename or "upload").stem
        stem = _UNSAFE_CHARS.sub("_", stem)[:40] or "upload"
        return f"{stem}-{self.request_id[:8]}-"

    def _require_path(self) -> Path:
        if self.path is None:
            raise RuntimeError("Workspace is not active")
        return self.path
