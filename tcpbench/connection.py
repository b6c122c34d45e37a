"""
Fully-transfer helpers shared by every benchmark.

A single send() or recv() on a TCP socket may move fewer bytes than asked
for. These helpers keep calling until the whole round has been moved, so a
round is only ever counted once all of its bytes went through.
"""

import logging
import socket

from tcpbench.errors import BenchError, PeerClosedError, TransferError

logger = logging.getLogger(__name__)


def _check_size(buf, n_bytes: int) -> None:
    if n_bytes < 1 or n_bytes > len(buf):
        raise ValueError(f"n_bytes must be in 1..{len(buf)}, got {n_bytes}")


def send_message(sock: socket.socket, buf, n_bytes: int) -> int:
    """
    Send the first n_bytes of buf, looping over short writes.

    Returns:
        int: byte count of the last send() call made for this round.
    """
    _check_size(buf, n_bytes)
    view = memoryview(buf)[:n_bytes]
    sent = 0
    last = 0
    try:
        while sent < n_bytes:
            last = sock.send(view[sent:])
            sent += last
    except OSError as e:
        raise TransferError("send", e) from e
    return last


def receive_message(sock: socket.socket, buf, n_bytes: int) -> int:
    """
    Read exactly n_bytes into buf, looping over short reads.

    Raises PeerClosedError when the peer shuts down before the round is full.
    """
    _check_size(buf, n_bytes)
    view = memoryview(buf)
    received = 0
    try:
        while received < n_bytes:
            n = sock.recv_into(view[received:n_bytes], n_bytes - received)
            if n == 0:
                raise PeerClosedError(received, n_bytes)
            received += n
    except OSError as e:
        raise TransferError("recv", e) from e
    return received


def open_listener(host: str, port: int, backlog: int) -> socket.socket:
    """Create, bind and listen, tagging each failure with the call that failed."""
    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    except OSError as e:
        raise BenchError("socket", e) from e

    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((host, port))
        except OSError as e:
            raise BenchError("bind", e) from e
        try:
            sock.listen(backlog)
        except OSError as e:
            raise BenchError("listen", e) from e
    except BenchError:
        sock.close()
        raise
    return sock


def accept(listener: socket.socket):
    try:
        return listener.accept()
    except OSError as e:
        raise BenchError("accept", e) from e


def open_connection(host: str, port: int, nodelay: bool = False) -> socket.socket:
    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    except OSError as e:
        raise BenchError("socket", e) from e

    try:
        if nodelay:
            sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        sock.connect((host, port))
    except OSError as e:
        sock.close()
        raise BenchError("connect", e) from e
    logger.debug(f"Connected to {host}:{port}")
    return sock
