import socket

import pytest

from chatclient.config import MAX_MSG_LEN, MAX_NAME_LEN
from chatclient.errors import ConnectError
from chatclient.session import ReceiveStatus, SendStatus, Session


@pytest.fixture
def session(sockpair):
    client, _ = sockpair
    return Session(client)


def test_send_writes_one_frame(session, sockpair):
    _, server = sockpair
    assert session.send("hello").status is SendStatus.OK
    assert server.recv(1024) == b"hello\x00"


def test_send_refuses_oversized_message(session, sockpair):
    _, server = sockpair
    result = session.send("a" * MAX_MSG_LEN)
    assert result.status is SendStatus.SEND_FAILED
    server.setblocking(False)
    with pytest.raises(BlockingIOError):
        server.recv(1024)


def test_send_name_uses_name_limit(session, sockpair):
    _, server = sockpair
    assert session.send_name("n" * (MAX_NAME_LEN + 1)).status is SendStatus.SEND_FAILED
    assert session.send_name("alice").status is SendStatus.OK
    assert server.recv(1024) == b"alice\x00"


def test_send_to_vanished_peer_fails(session, sockpair):
    _, server = sockpair
    server.close()
    assert session.send("hello").status is SendStatus.SEND_FAILED


def test_receive_one_frame(session, sockpair):
    _, server = sockpair
    server.sendall(b"welcome\x00")
    result = session.receive()
    assert result.status is ReceiveStatus.OK
    assert result.text == "welcome"


def test_receive_buffers_coalesced_frames(session, sockpair):
    _, server = sockpair
    server.sendall(b"one\x00two\x00")
    assert session.receive().text == "one"
    assert session.has_pending()
    server.close()
    # served from the buffer, the closed peer is not noticed yet
    assert session.receive().text == "two"
    assert session.receive().status is ReceiveStatus.PEER_CLOSED


def test_partial_frame_is_retry(session, sockpair):
    _, server = sockpair
    server.sendall(b"hel")
    assert session.receive().status is ReceiveStatus.RETRY
    server.sendall(b"lo\x00")
    result = session.receive()
    assert result.status is ReceiveStatus.OK
    assert result.text == "hello"


def test_nothing_to_read_is_retry(session):
    assert session.receive().status is ReceiveStatus.RETRY


def test_peer_close_is_reported(session, sockpair):
    _, server = sockpair
    server.close()
    assert session.receive().status is ReceiveStatus.PEER_CLOSED


def test_oversized_incoming_frame_fails(session, sockpair):
    _, server = sockpair
    server.sendall(b"x" * MAX_MSG_LEN)
    result = session.receive()
    assert result.status is ReceiveStatus.RECEIVE_FAILED
    assert result.error is not None


def test_close_is_idempotent(session):
    session.close()
    session.close()
    assert session.closed
    assert session.sock.fileno() == -1
    assert session.send("late").status is SendStatus.SEND_FAILED
    assert session.receive().status is ReceiveStatus.RECEIVE_FAILED


def test_context_manager_closes(sockpair):
    client, _ = sockpair
    with Session(client) as s:
        assert not s.closed
    assert s.closed


def test_connect_and_exchange():
    listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    listener.bind(("127.0.0.1", 0))
    listener.listen(1)
    port = listener.getsockname()[1]
    try:
        with Session.connect("127.0.0.1", port, timeout=2.0) as s:
            conn, _ = listener.accept()
            with conn:
                assert s.peer == ("127.0.0.1", port)
                assert s.send("ping").status is SendStatus.OK
                assert conn.recv(1024) == b"ping\x00"
    finally:
        listener.close()


def test_connect_refused():
    probe = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    probe.bind(("127.0.0.1", 0))
    port = probe.getsockname()[1]
    probe.close()
    with pytest.raises(ConnectError):
        Session.connect("127.0.0.1", port, timeout=2.0)
