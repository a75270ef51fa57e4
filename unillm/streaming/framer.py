"""
unillm - Line Framer

Splits an incrementally received text stream into newline-delimited
records. Anything after the last newline stays buffered until the next
chunk arrives.
"""

from typing import List, Optional


class LineFramer:
    """
    Accumulates decoded text and hands out complete, trimmed lines.

    The buffer only ever holds the pending tail that has not formed a
    complete line yet. There is no size bound on a single line.
    """

    def __init__(self):
        self._buffer = ""

    @property
    def pending(self) -> int:
        """Number of buffered characters not yet forming a line."""
        return len(self._buffer)

    def feed(self, chunk: str) -> List[str]:
        """
        Append a chunk and return every line it completed.

        Lines are returned with surrounding whitespace stripped, so
        ``\\r\\n`` terminated streams and blank keep-alive lines come out
        as ``""`` (the decoders ignore those).
        """
        if chunk:
            self._buffer += chunk

        lines: List[str] = []
        boundary = self._buffer.find("\n")
        while boundary != -1:
            lines.append(self._buffer[:boundary].strip())
            self._buffer = self._buffer[boundary + 1:]
            boundary = self._buffer.find("\n")

        return lines

    def flush_remainder(self) -> Optional[str]:
        """Return and clear the trailing partial line, if any."""
        remainder = self._buffer
        self._buffer = ""
        return remainder or None

    def reset(self):
        """Drop everything buffered."""
        self._buffer = ""
