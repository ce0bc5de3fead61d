import os
import socket

import pytest


@pytest.fixture
def pipe():
    """A (read_fd, write_fd) pair standing in for the operator's terminal."""
    r, w = os.pipe()
    fds = {"r": r, "w": w}
    yield fds
    for fd in fds.values():
        if fd is not None:
            try:
                os.close(fd)
            except OSError:
                pass


@pytest.fixture
def sockpair():
    """(client, server) connected stream sockets."""
    client, server = socket.socketpair()
    server.settimeout(2.0)
    yield client, server
    client.close()
    server.close()


def close_write(fds):
    os.close(fds["w"])
    fds["w"] = None


def drain(sock):
    """Read everything the other side sends until it closes."""
    chunks = []
    while True:
        data = sock.recv(4096)
        if not data:
            return b"".join(chunks)
        chunks.append(data)
