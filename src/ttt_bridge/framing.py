"""Newline framing for subscriber output.

Pipe reads return whatever the OS had buffered, so a chunk can end in the
middle of a line (or of a UTF-8 sequence) and can carry several lines at
once. LineFramer keeps the incomplete tail between reads and only hands out
whole lines.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

DEFAULT_MAX_LINE_LENGTH = 64 * 1024  # 64KB max single line

_NEWLINE = b"\n"


class LineFramer:
    """Turns arbitrarily split byte chunks into complete text lines.

    One framer belongs to one subscriber session; it is not shared between
    tasks and is not reused after the session ends.

    Attributes:
        max_line_length: Cap on buffered bytes for a single line, or None for
            no cap. A line that outgrows the cap is dropped in full.
    """

    def __init__(self, max_line_length: int | None = DEFAULT_MAX_LINE_LENGTH) -> None:
        """Initialize the framer.

        Args:
            max_line_length: Max bytes per line before it is discarded, or None
        """
        self.max_line_length = max_line_length
        # Buffer bytes (not str) so split multi-byte characters decode intact
        self._buffer = bytearray()
        self._discarding = False

    @property
    def pending(self) -> int:
        """Number of bytes held for the incomplete trailing line."""
        return len(self._buffer)

    def feed(self, chunk: bytes) -> list[str]:
        """Add a chunk and return every line it completes.

        Args:
            chunk: Raw bytes read from the subprocess; may be empty

        Returns:
            Complete lines in arrival order, delimiter stripped, empty lines
            removed
        """
        if not chunk:
            return []

        self._buffer.extend(chunk)
        lines: list[str] = []

        while True:
            newline_pos = self._buffer.find(_NEWLINE)
            if newline_pos < 0:
                break

            line_bytes = bytes(self._buffer[:newline_pos])
            del self._buffer[: newline_pos + 1]

            if self._discarding:
                # Tail of an oversized line
                self._discarding = False
                continue

            if self.max_line_length is not None and len(line_bytes) > self.max_line_length:
                logger.error(
                    "Line length %d exceeded %d bytes, dropping line",
                    len(line_bytes),
                    self.max_line_length,
                )
                continue

            line = self._decode(line_bytes)
            if line:
                lines.append(line)

        self._enforce_limit()
        return lines

    def flush(self) -> str | None:
        """Return the unterminated trailing fragment, if any, and clear it.

        Called at end of stream; the framer is empty afterwards.
        """
        if self._discarding or not self._buffer:
            self._buffer.clear()
            self._discarding = False
            return None
        line = self._decode(bytes(self._buffer))
        self._buffer.clear()
        return line or None

    def _enforce_limit(self) -> None:
        if self.max_line_length is None:
            return
        if len(self._buffer) > self.max_line_length:
            logger.error(
                "Buffered fragment exceeded %d bytes without a newline, "
                "discarding until next newline",
                self.max_line_length,
            )
            self._buffer.clear()
            self._discarding = True

    @staticmethod
    def _decode(line_bytes: bytes) -> str:
        if line_bytes.endswith(b"\r"):
            line_bytes = line_bytes[:-1]
        return line_bytes.decode("utf-8", errors="replace")
