import logging
import socket
from typing import Optional

from tcpbench.config import BenchConfig
from tcpbench.connection import open_connection, send_message

logger = logging.getLogger(__name__)


class ThroughputClient:
    def __init__(self, config: BenchConfig):
        self.config = config
        self.socket: Optional[socket.socket] = None
        # Contents are never inspected by the server
        self.buffer = bytes(config.n_bytes)
        self.last_sent = 0

    def connect(self):
        self.socket = open_connection(self.config.host, self.config.port)
        logger.info("connect successful!")

    def send_rounds(self) -> int:
        n_rounds = self.config.n_rounds
        logger.info(
            f"client send {n_rounds} rounds for {self.config.n_bytes} bytes, "
            f"total {self.config.total_bytes} bytes"
        )
        last_decile = 0

        for i in range(1, n_rounds + 1):
            self.last_sent = send_message(self.socket, self.buffer, self.config.n_bytes)
            # One line per 10% step reached, ending at exactly 100%
            decile = (i * 10) // n_rounds
            if decile > last_decile:
                last_decile = decile
                logger.info(f"{(i * 100) // n_rounds}% completed")
        return self.last_sent

    def close(self):
        if self.socket:
            self.socket.close()
            self.socket = None

    def run(self) -> int:
        """Connect, send every round and close. Returns the size of the last send() call."""
        try:
            self.connect()
            self.send_rounds()
        finally:
            self.close()
        logger.info(f"send successful! {self.last_sent}")
        return self.last_sent
