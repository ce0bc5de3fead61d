"""
codec.py - wire representation of a single chat message.

A frame is the UTF-8 text of one message followed by a single NUL byte.
The whole frame, terminator included, never exceeds MAX_MSG_LEN bytes.

TCP delivers a byte stream, not messages, so FrameDecoder reassembles
frames split across reads (and splits reads carrying several frames).
"""
from typing import Optional

from chatclient.config import ENCODING, MAX_MSG_LEN, SENTINEL, TERMINATOR
from chatclient.errors import FrameError


def encode(text: str, max_len: int = MAX_MSG_LEN) -> bytes:
    data = text.encode(ENCODING, errors="surrogateescape")
    if TERMINATOR in data:
        raise FrameError("message contains a NUL byte")
    if len(data) + len(TERMINATOR) > max_len:
        raise FrameError(f"message is {len(data)} bytes, limit is {max_len - len(TERMINATOR)}")
    return data + TERMINATOR


def decode(raw: bytes, n: Optional[int] = None) -> str:
    """Decode the first `n` bytes of `raw` as one frame.

    A trailing terminator is dropped. Bytes that are not valid UTF-8 are
    shown with replacement characters rather than rejected.
    """
    data = bytes(raw[:n] if n is not None else raw)
    if data.endswith(TERMINATOR):
        data = data[:-len(TERMINATOR)]
    return data.decode(ENCODING, errors="replace")


def is_sentinel(text: str) -> bool:
    return text == SENTINEL


class FrameDecoder:
    """Accumulates received bytes and hands out complete frames in order."""

    def __init__(self, max_len: int = MAX_MSG_LEN):
        self.max_len = max_len
        self._buf = bytearray()

    def feed(self, data: bytes) -> None:
        self._buf.extend(data)

    def has_frame(self) -> bool:
        return TERMINATOR in self._buf

    def next_frame(self) -> Optional[str]:
        idx = self._buf.find(TERMINATOR)
        if idx == -1:
            if len(self._buf) >= self.max_len:
                size = len(self._buf)
                self._buf.clear()
                raise FrameError(f"incoming frame exceeds {self.max_len} bytes (got {size} without terminator)")
            return None
        if idx + len(TERMINATOR) > self.max_len:
            self._buf.clear()
            raise FrameError(f"incoming frame exceeds {self.max_len} bytes")
        frame = bytes(self._buf[:idx + len(TERMINATOR)])
        del self._buf[:idx + len(TERMINATOR)]
        return decode(frame)

    def __len__(self):
        return len(self._buf)
