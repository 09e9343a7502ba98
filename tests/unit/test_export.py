"""
Tests for log export formatting and delivery.
"""

import pytest
from datetime import datetime, timezone

from kubelog.export.formatter import (
    ExportOptions, format_export, default_filename, iso_timestamp, write_export
)
from kubelog.utils.errors import ExportError


EXPORT_TIME = datetime(2024, 1, 1, 12, 30, 45, 678000, tzinfo=timezone.utc)

LINES = [
    "2024-01-01T10:00:00.000000001Z server started",
    "2024-01-01T10:00:01.000000001Z listening on :8080",
]


class TestFormatExport:
    """Test export document content."""

    def test_metadata_header_and_raw_lines(self):
        document = format_export(LINES, "prod", "api-0", now=EXPORT_TIME)

        assert document.content == "\n".join([
            "# Kubernetes Pod Logs Export",
            "# Namespace: prod",
            "# Pod: api-0",
            "# Export Time: 2024-01-01T12:30:45.678Z",
            "# Total Lines: 2",
            "# Include Timestamps: true",
            "# ",
            "",
            LINES[0],
            LINES[1],
        ])
        assert document.line_count == 2
        assert document.media_type == "text/plain; charset=utf-8"

    def test_without_timestamps(self):
        options = ExportOptions(include_timestamps=False, include_metadata=False)
        document = format_export(LINES, "prod", "api-0", options=options, now=EXPORT_TIME)

        assert document.content == "server started\nlistening on :8080"

    def test_header_records_timestamp_choice(self):
        options = ExportOptions(include_timestamps=False)
        document = format_export(LINES, "prod", "api-0", options=options, now=EXPORT_TIME)

        assert "# Include Timestamps: false" in document.content.splitlines()

    def test_without_metadata(self):
        options = ExportOptions(include_metadata=False)
        document = format_export(LINES, "prod", "api-0", options=options, now=EXPORT_TIME)

        assert document.content == "\n".join(LINES)

    def test_empty_buffer_rejected(self):
        with pytest.raises(ExportError) as exc_info:
            format_export([], "prod", "api-0")
        assert str(exc_info.value) == "no lines"

    def test_custom_filename(self):
        options = ExportOptions(filename="snapshot.log")
        document = format_export(LINES, "prod", "api-0", options=options)
        assert document.filename == "snapshot.log"

    def test_data_is_utf8(self):
        document = format_export(["héllo"], "ns", "pod", ExportOptions(include_metadata=False))
        assert document.data == "héllo".encode("utf-8")


class TestFilenames:
    """Test timestamps and default filenames."""

    def test_iso_timestamp_milliseconds(self):
        assert iso_timestamp(EXPORT_TIME) == "2024-01-01T12:30:45.678Z"

    def test_iso_timestamp_naive_is_utc(self):
        assert iso_timestamp(datetime(2024, 1, 1)) == "2024-01-01T00:00:00.000Z"

    def test_default_filename(self):
        assert default_filename("prod", "api-0", EXPORT_TIME) == \
            "prod-api-0-2024-01-01T12-30-45-678Z.log"

    def test_default_filename_used(self):
        document = format_export(LINES, "prod", "api-0", now=EXPORT_TIME)
        assert document.filename == "prod-api-0-2024-01-01T12-30-45-678Z.log"


class TestWriteExport:
    """Test writing documents to disk."""

    @pytest.mark.asyncio
    async def test_write_creates_directory(self, export_dir):
        document = format_export(LINES, "prod", "api-0", now=EXPORT_TIME)

        path = await write_export(document, export_dir)

        assert path == export_dir / document.filename
        assert path.read_bytes() == document.data

    @pytest.mark.asyncio
    async def test_filename_cannot_escape_directory(self, export_dir):
        options = ExportOptions(filename="../outside.log")
        document = format_export(LINES, "prod", "api-0", options=options)

        path = await write_export(document, export_dir)

        assert path.parent == export_dir
