"""
line_reader.py - bounded line input from the operator's terminal.

Reads straight from the file descriptor with os.read() instead of going
through sys.stdin, whose internal buffer would hide already-read lines
from select().
"""
import enum
import logging
import os
from dataclasses import dataclass
from typing import Optional

from chatclient.config import MAX_MSG_LEN, READ_SIZE

log = logging.getLogger("chatclient.line_reader")

NEWLINE = b"\n"


class ReadStatus(enum.Enum):
    EMPTY = "empty"
    LINE = "line"
    TOO_LONG = "too_long"
    END_OF_INPUT = "end_of_input"
    IO_ERROR = "io_error"
    INCOMPLETE = "incomplete"   # would block before a whole line arrived


@dataclass(frozen=True)
class ReadResult:
    status: ReadStatus
    text: str = ""
    error: Optional[OSError] = None


class LineReader:
    def __init__(self, fd: int, limit: int = MAX_MSG_LEN - 1, read_size: int = READ_SIZE):
        self.fd = fd
        self.limit = limit
        self.read_size = read_size
        self._buf = bytearray()
        self._discarding = False
        self._eof = False

    def fileno(self) -> int:
        return self.fd

    def has_buffered_line(self) -> bool:
        return NEWLINE in self._buf or (self._eof and bool(self._buf))

    def read_line(self, limit: Optional[int] = None, wait: bool = True) -> ReadResult:
        """Return the next line, or why there is none.

        `limit` caps the content bytes, newline excluded. A line longer than
        that is reported once as TOO_LONG and the rest of it, up to and
        including its newline, is thrown away so it never surfaces as a
        line of its own.

        With `wait` false at most one os.read() is made, so a caller that
        was just told by select() the descriptor is readable never blocks.
        If that read does not complete a line the result is INCOMPLETE.
        """
        limit = self.limit if limit is None else limit
        reads = 0
        while True:
            result = self._take_line(limit)
            if result is not None:
                return result
            if self._eof:
                return ReadResult(ReadStatus.END_OF_INPUT)
            if reads and not wait:
                return ReadResult(ReadStatus.INCOMPLETE)
            try:
                chunk = os.read(self.fd, self.read_size)
            except (BlockingIOError, InterruptedError):
                return ReadResult(ReadStatus.INCOMPLETE)
            except OSError as e:
                log.debug(f"action: read_stdin | result: fail | error: {e}")
                return ReadResult(ReadStatus.IO_ERROR, error=e)
            reads += 1
            if not chunk:
                self._eof = True
                continue
            self._buf.extend(chunk)

    def _take_line(self, limit: int) -> Optional[ReadResult]:
        if self._discarding:
            idx = self._buf.find(NEWLINE)
            if idx == -1:
                self._buf.clear()
                if self._eof:
                    self._discarding = False
                return None
            del self._buf[:idx + 1]
            self._discarding = False

        idx = self._buf.find(NEWLINE)
        if idx == -1:
            # one spare byte for a "\r" still waiting on its "\n"
            if len(self._buf) > limit + 1:
                log.debug(f"action: read_stdin | result: too_long | limit: {limit}")
                self._buf.clear()
                self._discarding = not self._eof
                return ReadResult(ReadStatus.TOO_LONG)
            if self._eof and self._buf:
                raw = bytes(self._buf)
                self._buf.clear()
                return self._line(raw, limit)
            return None

        raw = bytes(self._buf[:idx])
        del self._buf[:idx + 1]
        return self._line(raw, limit)

    @staticmethod
    def _line(raw: bytes, limit: int) -> ReadResult:
        if raw.endswith(b"\r"):
            raw = raw[:-1]
        if len(raw) > limit:
            return ReadResult(ReadStatus.TOO_LONG)
        if not raw:
            return ReadResult(ReadStatus.EMPTY)
        return ReadResult(ReadStatus.LINE, raw.decode("utf-8", errors="surrogateescape"))
