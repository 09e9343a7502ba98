"""
Line reassembly for chunked log streams.

This module turns arbitrarily split byte chunks into complete log lines:
- Incremental decoding (multi-byte characters may straddle chunks)
- Partial line retention between chunks
- Blank line suppression
"""

import codecs
from typing import Dict, Any, Iterator, List

from ..utils.logging import get_logger
from ..utils.errors import DecodeError

logger = get_logger("kubelog.reassembler")


class LineReassembler:
    """Decodes byte chunks and extracts complete lines."""

    def __init__(self, encoding: str = "utf-8", errors: str = "replace"):
        """
        Initialize line reassembler.

        Args:
            encoding: Text encoding of the stream
            errors: Decoder error handling ("replace" or "strict")
        """
        self.encoding = encoding
        self.errors = errors

        self._decoder_factory = codecs.getincrementaldecoder(encoding)
        self._decoder = self._decoder_factory(errors=errors)
        self._tail = ""

        # Stats
        self._total_bytes = 0
        self._total_lines = 0
        self._blank_lines = 0

    def feed(self, chunk: bytes) -> Iterator[str]:
        """
        Feed one chunk and return the lines it completed.

        The decoder and tail are updated before this returns, so the
        iterator may be consumed lazily or dropped without losing state.

        Raises:
            DecodeError: If the chunk is malformed and errors is "strict"
        """
        self._total_bytes += len(chunk)

        try:
            text = self._decoder.decode(chunk)
        except UnicodeDecodeError as e:
            logger.error(
                "decode_error",
                error=str(e),
                chunk_length=len(chunk)
            )
            self.reset()
            raise DecodeError(f"Malformed {self.encoding} in log stream: {e}", cause=e) from e

        segments = (self._tail + text).split("\n")
        self._tail = segments.pop()

        return self._complete_lines(segments)

    def _complete_lines(self, segments: List[str]) -> Iterator[str]:
        for line in segments:
            if not line.strip():
                self._blank_lines += 1
                continue
            self._total_lines += 1
            yield line

    def reset(self) -> None:
        """Drop the partial line and any decoder state."""
        self._decoder = self._decoder_factory(errors=self.errors)
        self._tail = ""

    def close(self) -> None:
        """
        Mark end of stream.

        An unterminated tail is discarded rather than emitted: the server may
        still have been writing it.
        """
        if self._tail:
            logger.debug("discarding_partial_line", length=len(self._tail))
        self.reset()

    def get_stats(self) -> Dict[str, Any]:
        """Get reassembler statistics."""
        return {
            "total_bytes": self._total_bytes,
            "total_lines": self._total_lines,
            "blank_lines": self._blank_lines,
            "has_partial": bool(self._tail),
        }


__all__ = ['LineReassembler']
