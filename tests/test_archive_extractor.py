"""Tests for container extraction."""

import threading
from pathlib import Path

import pytest

from services.archive_extractor import ArchiveExtractor
from utils.exceptions import ExtractionError, ProcessingTimeout

from conftest import PDF_BYTES, build_zip


@pytest.fixture
def extractor() -> ArchiveExtractor:
    return ArchiveExtractor()


class TestExtract:

    def test_extracts_full_tree(self, extractor, tmp_path):
        container = build_zip({
            "index.notes.pb": b"meta",
            "attachments/note1": PDF_BYTES,
            "attachments/nested/deep": b"x",
        })

        extracted = extractor.extract(container, tmp_path)

        root = tmp_path.resolve()
        assert extracted == {
            root / "index.notes.pb",
            root / "attachments" / "note1",
            root / "attachments" / "nested" / "deep",
        }
        assert (root / "attachments" / "note1").read_bytes() == PDF_BYTES

    def test_creates_destination(self, extractor, tmp_path):
        destination = tmp_path / "extracted"
        extractor.extract(build_zip({"attachments/a": b"1234"}), destination)
        assert (destination / "attachments" / "a").is_file()

    def test_missing_parent_is_not_recreated(self, extractor, tmp_path):
        destination = tmp_path / "removed-workspace" / "extracted"

        with pytest.raises(FileNotFoundError):
            extractor.extract(build_zip({"attachments/a": PDF_BYTES}), destination)

        assert not (tmp_path / "removed-workspace").exists()

    def test_stops_when_cancelled(self, extractor, tmp_path):
        cancel_event = threading.Event()
        cancel_event.set()

        with pytest.raises(ProcessingTimeout):
            extractor.extract(build_zip({"attachments/a": PDF_BYTES}), tmp_path, cancel_event)

        assert not (tmp_path / "attachments").exists()

    def test_directory_entries_are_created(self, extractor, tmp_path):
        extracted = extractor.extract(build_zip({"attachments/": b""}), tmp_path)
        assert extracted == set()
        assert (tmp_path / "attachments").is_dir()

    def test_not_a_zip(self, extractor, tmp_path):
        with pytest.raises(ExtractionError) as exc_info:
            extractor.extract(b"this is not an archive", tmp_path)
        assert exc_info.value.code == "EXTRACTION_FAILED"

    def test_truncated_archive(self, extractor, tmp_path):
        container = build_zip({"attachments/a": PDF_BYTES * 100})
        with pytest.raises(ExtractionError):
            extractor.extract(container[: len(container) // 2], tmp_path)

    def test_rejects_path_traversal(self, extractor, tmp_path):
        destination = tmp_path / "dest"
        container = build_zip({"../evil.txt": b"owned"})

        with pytest.raises(ExtractionError):
            extractor.extract(container, destination)

        assert not (tmp_path / "evil.txt").exists()

    def test_rejects_too_many_entries(self, tmp_path):
        extractor = ArchiveExtractor(max_entries=2)
        container = build_zip({f"attachments/{i}": b"x" for i in range(3)})

        with pytest.raises(ExtractionError) as exc_info:
            extractor.extract(container, tmp_path)
        assert exc_info.value.details["max_entries"] == 2
