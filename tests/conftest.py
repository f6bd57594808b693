"""
Pytest configuration and fixtures
"""
import io
import sys
import zipfile
from pathlib import Path
from typing import Dict

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent

if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<<>>\nendobj\n%%EOF\n"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 24
MP4_BYTES = b"\x00\x00\x00\x20ftypisom" + b"\x00" * 20
MP4_SHORT_BOX_BYTES = b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 12
UNKNOWN_BYTES = b"\xff\xff\xff\xff" + b"garbage"


def build_zip(entries: Dict[str, bytes]) -> bytes:
    """Build a zip archive in memory; names ending in '/' become directories."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for name, data in entries.items():
            zf.writestr(name, data)
    return buffer.getvalue()


def read_zip(data: bytes) -> Dict[str, bytes]:
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        return {name: zf.read(name) for name in zf.namelist()}


@pytest.fixture
def make_container():
    return build_zip


@pytest.fixture
def goodnotes_container() -> bytes:
    return build_zip({
        "index.notes.pb": b"\x08\x01",
        "attachments/note1": PDF_BYTES,
        "attachments/note2": UNKNOWN_BYTES,
        "attachments/photo.bin": PNG_BYTES,
        "attachments/clip": MP4_BYTES,
    })


@pytest.fixture
def work_root(tmp_path: Path) -> Path:
    root = tmp_path / "work"
    root.mkdir()
    return root
