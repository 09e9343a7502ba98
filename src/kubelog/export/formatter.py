"""
Log export for kubelog.

Turns a session's buffered lines into a plain-text document and, at the
delivery boundary, writes it to disk.
"""

import aiofiles
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Sequence

from ..models.log_line import parse_log_line
from ..utils.errors import ExportError
from ..utils.logging import get_logger

logger = get_logger(__name__)

MEDIA_TYPE = "text/plain; charset=utf-8"


@dataclass(frozen=True)
class ExportOptions:
    """Options for exporting logs."""
    filename: Optional[str] = None
    include_timestamps: bool = True
    include_metadata: bool = True


@dataclass(frozen=True)
class ExportDocument:
    """A finished export: suggested filename plus content."""
    filename: str
    content: str
    line_count: int
    media_type: str = MEDIA_TYPE

    @property
    def data(self) -> bytes:
        return self.content.encode("utf-8")


def iso_timestamp(now: datetime) -> str:
    """UTC ISO 8601 with millisecond precision, e.g. ``2024-01-01T10:00:00.000Z``."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    now = now.astimezone(timezone.utc)
    return f"{now:%Y-%m-%dT%H:%M:%S}.{now.microsecond // 1000:03d}Z"


def default_filename(namespace: str, pod: str, now: Optional[datetime] = None) -> str:
    stamp = iso_timestamp(now or datetime.now(timezone.utc))
    stamp = stamp.replace(":", "-").replace(".", "-")
    return f"{namespace}-{pod}-{stamp}.log"


def format_export(
    lines: Sequence[str],
    namespace: str,
    pod: str,
    options: Optional[ExportOptions] = None,
    now: Optional[datetime] = None
) -> ExportDocument:
    """
    Build an export document from buffered lines.

    Args:
        lines: Raw lines in arrival order
        namespace: Namespace of the session
        pod: Pod of the session
        options: Export options (defaults keep timestamps and metadata)
        now: Export time (defaults to the current UTC time)

    Returns:
        The export document

    Raises:
        ExportError: If there are no lines to export
    """
    if not lines:
        raise ExportError("no lines")

    options = options or ExportOptions()
    now = now or datetime.now(timezone.utc)

    content_lines = []

    if options.include_metadata:
        content_lines.extend([
            "# Kubernetes Pod Logs Export",
            f"# Namespace: {namespace}",
            f"# Pod: {pod}",
            f"# Export Time: {iso_timestamp(now)}",
            f"# Total Lines: {len(lines)}",
            f"# Include Timestamps: {str(options.include_timestamps).lower()}",
            "# ",
            "",
        ])

    if options.include_timestamps:
        content_lines.extend(lines)
    else:
        content_lines.extend(parse_log_line(line).message for line in lines)

    document = ExportDocument(
        filename=options.filename or default_filename(namespace, pod, now),
        content="\n".join(content_lines),
        line_count=len(lines),
    )

    logger.info(
        "logs_exported",
        namespace=namespace,
        pod=pod,
        line_count=document.line_count,
        filename=document.filename
    )
    return document


async def write_export(document: ExportDocument, directory: Path) -> Path:
    """
    Write a document into ``directory`` under its suggested filename.

    Returns:
        Path of the written file
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    output_path = directory / Path(document.filename).name

    async with aiofiles.open(output_path, "wb") as f:
        await f.write(document.data)

    logger.debug("export_written", path=str(output_path), size=len(document.data))
    return output_path


__all__ = [
    'ExportOptions',
    'ExportDocument',
    'format_export',
    'default_filename',
    'iso_timestamp',
    'write_export',
]
