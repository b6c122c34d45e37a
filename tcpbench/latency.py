"""
Ping-pong latency benchmark.

Both sides run twice the configured rounds. The client only keeps the
second half of the samples, so TCP slow start does not skew the result.
"""

import logging
import socket
import time
from typing import Optional

from tcpbench.config import BenchConfig
from tcpbench.connection import (accept, open_connection, open_listener,
                                 receive_message, send_message)
from tcpbench.metrics import LatencyStats

logger = logging.getLogger(__name__)


class LatencyServer:
    def __init__(self, config: BenchConfig):
        self.config = config
        self.socket: Optional[socket.socket] = None
        self.buffer = bytearray(config.n_bytes)

    def setup(self):
        self.socket = open_listener(self.config.host, self.config.port, self.config.backlog)
        host, port = self.socket.getsockname()[:2]
        logger.info(
            f"Server for latency test running {self.config.n_bytes} bytes each for "
            f"{self.config.n_rounds} rounds, listening on {host}:{port}"
        )

    @property
    def port(self) -> int:
        if self.socket is None:
            raise RuntimeError("setup() must be called before the port is known")
        return self.socket.getsockname()[1]

    def echo(self, conn: socket.socket) -> int:
        """Echo 2 * n_rounds buffers back to the client. Returns the rounds served."""
        n_bytes = self.config.n_bytes
        rounds = self.config.n_rounds * 2
        for _ in range(rounds):
            receive_message(conn, self.buffer, n_bytes)
            send_message(conn, self.buffer, n_bytes)
        return rounds

    def serve_once(self) -> int:
        conn, addr = accept(self.socket)
        logger.info(f"Connection established with {addr[0]}:{addr[1]}")
        with conn:
            conn.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
            rounds = self.echo(conn)
        logger.info("Done exchanging stuff")
        return rounds

    def run(self) -> int:
        self.setup()
        try:
            return self.serve_once()
        finally:
            self.close()

    def close(self):
        if self.socket:
            self.socket.close()
            self.socket = None


class LatencyClient:
    def __init__(self, config: BenchConfig):
        self.config = config
        self.socket: Optional[socket.socket] = None
        self.wbuf = bytes(config.n_bytes)
        self.rbuf = bytearray(config.n_bytes)

    def connect(self):
        logger.info(f"Connecting to the server {self.config.host}:{self.config.port}...")
        self.socket = open_connection(self.config.host, self.config.port, nodelay=True)
        logger.info("Connection established! Ready to send...")

    def exchange(self) -> LatencyStats:
        n_bytes = self.config.n_bytes
        n_rounds = self.config.n_rounds
        stats = LatencyStats(n_bytes)

        for i in range(n_rounds * 2):
            start = time.perf_counter()
            send_message(self.socket, self.wbuf, n_bytes)
            send_end = time.perf_counter()
            receive_message(self.socket, self.rbuf, n_bytes)
            end = time.perf_counter()

            logger.debug(
                f"[{i}] duration {(end - start) * 1e6:.0f} us, "
                f"send {(send_end - start) * 1e6:.0f} us "
                f"receive {(end - send_end) * 1e6:.0f} us"
            )
            if i >= n_rounds:
                stats.record(end - start)
        return stats

    def close(self):
        if self.socket:
            self.socket.close()
            self.socket = None

    def run(self) -> LatencyStats:
        try:
            self.connect()
            stats = self.exchange()
        finally:
            self.close()

        summary = stats.summary()
        logger.info(
            f"latency max: {summary['max_us']:.0f}us, min: {summary['min_us']:.0f}us, "
            f"median: {summary['median_us']:.0f}us, p99: {summary['p99_us']:.0f}us"
        )
        return stats
