"""
Hello-world socket demo.

The server reads at most max_data_size bytes with a single recv() per
connection. A message longer than that arrives truncated, which is what the
demo is meant to show.
"""

import logging
import socket
from typing import Optional

from tcpbench.config import BenchConfig
from tcpbench.connection import accept, open_connection, open_listener
from tcpbench.errors import TransferError

logger = logging.getLogger(__name__)


def decode_text(data: bytes) -> str:
    return data.split(b"\0", 1)[0].decode(errors="replace")


class MessageServer:
    def __init__(self, config: BenchConfig):
        self.config = config
        self.socket: Optional[socket.socket] = None

    def setup(self):
        self.socket = open_listener(self.config.host, self.config.port, self.config.backlog)
        logger.info(f"Socket successful!, listening on {self.socket.getsockname()[0]}:{self.port}")

    @property
    def port(self) -> int:
        if self.socket is None:
            raise RuntimeError("setup() must be called before the port is known")
        return self.socket.getsockname()[1]

    def handle_one(self) -> bytes:
        conn, addr = accept(self.socket)
        logger.info(f"accept success! client: {addr[0]}:{addr[1]}")
        with conn:
            try:
                data = conn.recv(self.config.max_data_size)
            except OSError as e:
                raise TransferError("recv", e) from e
        logger.info(f"received data : {decode_text(data)}")
        return data

    def serve_forever(self):
        while True:
            self.handle_one()

    def run(self):
        self.setup()
        try:
            self.serve_forever()
        finally:
            self.close()

    def close(self):
        if self.socket:
            self.socket.close()
            self.socket = None


class MessageClient:
    def __init__(self, config: BenchConfig):
        self.config = config

    def payload(self) -> bytes:
        return self.config.message.encode() + b"\0"

    def run(self) -> int:
        """Send the message with one send() call. Returns the bytes that call wrote."""
        with open_connection(self.config.host, self.config.port) as sock:
            logger.info("connect successful!")
            try:
                sent = sock.send(self.payload())
            except OSError as e:
                raise TransferError("send", e) from e
        logger.info(f"send successful! {sent}")
        return sent
