"""
session.py - the single TCP connection to the chat server.

The socket runs non-blocking once connected. Reads are only attempted after
select() reported it readable; a read that would block anyway is a Retry,
not an error. The session closes its socket exactly once.
"""
import enum
import logging
import select
import socket
from dataclasses import dataclass
from typing import Optional

from chatclient import codec
from chatclient.config import CONNECT_TIMEOUT, MAX_MSG_LEN, MAX_NAME_LEN, RECV_SIZE, SEND_TIMEOUT
from chatclient.errors import ConnectError, FrameError

log = logging.getLogger("chatclient.session")


class SendStatus(enum.Enum):
    OK = "ok"
    SEND_FAILED = "send_failed"


class ReceiveStatus(enum.Enum):
    OK = "ok"
    PEER_CLOSED = "peer_closed"
    RETRY = "retry"
    RECEIVE_FAILED = "receive_failed"


@dataclass(frozen=True)
class SendResult:
    status: SendStatus
    error: Optional[Exception] = None


@dataclass(frozen=True)
class ReceiveResult:
    status: ReceiveStatus
    text: str = ""
    error: Optional[Exception] = None


class Session:
    def __init__(self, sock: socket.socket, peer=None, send_timeout: float = SEND_TIMEOUT,
                 recv_size: int = RECV_SIZE):
        self.sock = sock
        self.peer = peer
        self.send_timeout = send_timeout
        self.recv_size = recv_size
        self._decoder = codec.FrameDecoder(MAX_MSG_LEN)
        self._closed = False
        self.sock.setblocking(False)

    @classmethod
    def connect(cls, host: str, port: int, timeout: float = CONNECT_TIMEOUT) -> "Session":
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.settimeout(timeout)
        try:
            sock.connect((host, port))
        except OSError as e:
            sock.close()
            reason = e.strerror or str(e) or type(e).__name__
            log.debug(f"action: connect | result: fail | ip: {host} | port: {port} | error: {reason}")
            raise ConnectError(reason) from e
        log.debug(f"action: connect | result: success | ip: {host} | port: {port}")
        return cls(sock, peer=(host, port))

    # --------------- State ---------------
    @property
    def closed(self) -> bool:
        return self._closed

    def fileno(self) -> int:
        return self.sock.fileno()

    def has_pending(self) -> bool:
        return self._decoder.has_frame()

    # --------------- Sending ---------------
    def send(self, text: str) -> SendResult:
        try:
            frame = codec.encode(text)
        except FrameError as e:
            return SendResult(SendStatus.SEND_FAILED, e)
        return self._send_frame(frame)

    def send_name(self, name: str) -> SendResult:
        try:
            frame = codec.encode(name, max_len=MAX_NAME_LEN + 1)
        except FrameError as e:
            return SendResult(SendStatus.SEND_FAILED, e)
        return self._send_frame(frame)

    def _send_frame(self, frame: bytes) -> SendResult:
        if self._closed:
            return SendResult(SendStatus.SEND_FAILED, OSError("connection is closed"))
        view = memoryview(frame)
        try:
            while view:
                try:
                    sent = self.sock.send(view)
                except (BlockingIOError, InterruptedError):
                    _, writable, _ = select.select([], [self.sock], [], self.send_timeout)
                    if not writable:
                        raise TimeoutError("timed out waiting to send")
                    continue
                view = view[sent:]
        except OSError as e:
            log.debug(f"action: send | result: fail | error: {e}")
            return SendResult(SendStatus.SEND_FAILED, e)
        log.debug(f"action: send | result: success | bytes: {len(frame)}")
        return SendResult(SendStatus.OK)

    # --------------- Receiving ---------------
    def receive(self) -> ReceiveResult:
        """Return the next complete frame from the server.

        A frame already buffered by an earlier read is handed out without
        touching the socket. Otherwise one recv() is made; if that still
        leaves only part of a frame the result is RETRY.
        """
        try:
            text = self._decoder.next_frame()
            if text is not None:
                return ReceiveResult(ReceiveStatus.OK, text)
            if self._closed:
                return ReceiveResult(ReceiveStatus.RECEIVE_FAILED, error=OSError("connection is closed"))
            try:
                data = self.sock.recv(self.recv_size)
            except (BlockingIOError, InterruptedError):
                return ReceiveResult(ReceiveStatus.RETRY)
            except OSError as e:
                log.debug(f"action: receive | result: fail | error: {e}")
                return ReceiveResult(ReceiveStatus.RECEIVE_FAILED, error=e)
            if not data:
                log.debug("action: receive | result: peer_closed")
                return ReceiveResult(ReceiveStatus.PEER_CLOSED)
            log.debug(f"action: receive | result: success | bytes: {len(data)}")
            self._decoder.feed(data)
            text = self._decoder.next_frame()
        except FrameError as e:
            log.debug(f"action: receive | result: fail | error: {e}")
            return ReceiveResult(ReceiveStatus.RECEIVE_FAILED, error=e)
        if text is None:
            return ReceiveResult(ReceiveStatus.RETRY)
        return ReceiveResult(ReceiveStatus.OK, text)

    # --------------- Teardown ---------------
    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self.sock.close()
        except OSError as e:
            log.debug(f"action: close | result: fail | error: {e}")
            return
        log.debug("action: close | result: success")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
