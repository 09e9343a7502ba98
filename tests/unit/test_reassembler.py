"""
Tests for chunk-to-line reassembly.
"""

import pytest

from kubelog.streaming.reassembler import LineReassembler
from kubelog.utils.errors import DecodeError
from tests.fixtures import StreamingFixtures


class TestLineReassembler:
    """Test line reassembly across chunk boundaries."""

    def test_complete_lines_in_one_chunk(self):
        """Every newline-terminated line is emitted."""
        reassembler = LineReassembler()
        assert list(reassembler.feed(b"first\nsecond\n")) == ["first", "second"]

    def test_line_split_across_chunks(self):
        """A trailing fragment is held until its newline arrives."""
        reassembler = LineReassembler()

        assert list(reassembler.feed(b"alpha\nbe")) == ["alpha"]
        assert list(reassembler.feed(b"ta\ngam")) == ["beta"]
        assert list(reassembler.feed(b"ma\n")) == ["gamma"]

    def test_arbitrary_chunking_matches_whole_payload(self):
        """Chunk size never changes the emitted lines."""
        lines = StreamingFixtures.create_log_lines(20)
        payload = StreamingFixtures.to_payload(lines)

        for size in (1, 3, 7, 64, len(payload)):
            reassembler = LineReassembler()
            collected = []
            for chunk in StreamingFixtures.split_chunks(payload, size):
                collected.extend(reassembler.feed(chunk))
            assert collected == lines

    def test_multibyte_character_split_across_chunks(self):
        """A UTF-8 sequence cut between chunks decodes intact."""
        data = "héllo wörld\n".encode("utf-8")
        cut = data.index("é".encode("utf-8")) + 1

        reassembler = LineReassembler()
        assert list(reassembler.feed(data[:cut])) == []
        assert list(reassembler.feed(data[cut:])) == ["héllo wörld"]

    def test_blank_lines_dropped(self):
        """Empty and whitespace-only lines never reach the buffer."""
        reassembler = LineReassembler()
        lines = list(reassembler.feed(b"one\n\n   \n\t\ntwo\n"))

        assert lines == ["one", "two"]
        assert reassembler.get_stats()["blank_lines"] == 3

    def test_close_discards_partial_line(self):
        """An unterminated tail is never emitted."""
        reassembler = LineReassembler()
        list(reassembler.feed(b"done\npartial"))
        assert reassembler.get_stats()["has_partial"] is True

        reassembler.close()

        assert reassembler.get_stats()["has_partial"] is False
        assert list(reassembler.feed(b" rest\n")) == [" rest"]

    def test_reset_drops_tail(self):
        """reset() starts over from an empty tail."""
        reassembler = LineReassembler()
        list(reassembler.feed(b"stale"))
        reassembler.reset()

        assert list(reassembler.feed(b"fresh\n")) == ["fresh"]

    def test_feed_updates_state_without_consuming(self):
        """Dropping the returned iterator does not lose the tail."""
        reassembler = LineReassembler()
        reassembler.feed(b"a\nhal")

        assert list(reassembler.feed(b"f\n")) == ["half"]

    def test_invalid_bytes_replaced(self):
        """The default error mode substitutes U+FFFD."""
        reassembler = LineReassembler()
        assert list(reassembler.feed(b"bad \xff byte\n")) == ["bad � byte"]

    def test_invalid_bytes_strict(self):
        """Strict decoding raises a retryable DecodeError and resets."""
        reassembler = LineReassembler(errors="strict")
        list(reassembler.feed(b"kept"))

        with pytest.raises(DecodeError) as exc_info:
            reassembler.feed(b"\xff\n")

        assert exc_info.value.is_retryable
        assert reassembler.get_stats()["has_partial"] is False

    def test_stats(self):
        """Byte and line counters accumulate."""
        reassembler = LineReassembler()
        list(reassembler.feed(b"a\nb\n"))
        list(reassembler.feed(b"c"))

        stats = reassembler.get_stats()
        assert stats["total_bytes"] == 5
        assert stats["total_lines"] == 2
        assert stats["has_partial"] is True
