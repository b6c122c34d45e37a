import json
import logging
import os
import socket
from typing import Optional

from tcpbench.config import BenchConfig
from tcpbench.connection import accept, open_listener, receive_message
from tcpbench.metrics import TransferStats

logger = logging.getLogger(__name__)


class ThroughputServer:
    """
    Serial throughput receiver.

    Accepts one client at a time, reads n_rounds full buffers from it, and
    reports the bandwidth. Any socket error ends the server, the next
    client is never served after a failure.
    """

    def __init__(self, config: BenchConfig, results_path: Optional[str] = None):
        self.config = config
        self.results_path = results_path
        self.socket: Optional[socket.socket] = None
        self.buffer = bytearray(config.n_bytes)

    def setup(self):
        """Set up and initialize the listening socket"""
        self.socket = open_listener(self.config.host, self.config.port, self.config.backlog)
        host, port = self.socket.getsockname()[:2]
        logger.info(f"Server listening on {host}:{port}")
        logger.info(
            f"{self.config.n_bytes} Bytes for {self.config.n_rounds} Rounds, "
            f"{self.config.total_bytes // 1024} KB in total"
        )

    @property
    def port(self) -> int:
        """Bound port, which differs from config.port when that is 0."""
        if self.socket is None:
            raise RuntimeError("setup() must be called before the port is known")
        return self.socket.getsockname()[1]

    def accept_connection(self):
        conn, addr = accept(self.socket)
        logger.info(f"Connection established with {addr[0]}:{addr[1]}")
        return conn, addr

    def receive_rounds(self, conn: socket.socket, peer: str = "") -> TransferStats:
        stats = TransferStats(self.config.n_bytes, self.config.n_rounds, peer=peer)
        stats.begin()
        for i in range(self.config.n_rounds):
            received = receive_message(conn, self.buffer, self.config.n_bytes)
            stats.record_round(received)
            logger.debug(f"round {i}, recv {received} bytes, tot_bytes {stats.total_bytes}")
        stats.finish()
        return stats

    def report(self, stats: TransferStats):
        logger.info(f"Receive total {stats.total_kbytes} KBytes in {stats.elapsed:.6f} s")
        logger.info(f"Bandwidth: {stats.bandwidth_mbps:.2f} Mbit/s")
        if stats.stable_time > 0:
            logger.info(
                f"Stable {stats.stable_bytes} Bytes in {stats.stable_time:.6f} s, "
                f"{stats.stable_bandwidth_mbps:.2f} Mbit/s"
            )
        if self.results_path:
            self.save_result(stats)

    def load_results(self) -> list:
        """Previously saved runs; an unreadable file starts a fresh list."""
        if not os.path.exists(self.results_path):
            return []
        try:
            with open(self.results_path, "r") as f:
                runs = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable results file {self.results_path}: {e}")
            return []
        if not isinstance(runs, list):
            logger.warning(f"Ignoring results file {self.results_path}: not a list of runs")
            return []
        return runs

    def save_result(self, stats: TransferStats) -> bool:
        """Append stats to the results file. A write failure never stops the server."""
        runs = self.load_results()
        runs.append(stats.to_dict())

        try:
            with open(self.results_path, "w") as f:
                json.dump(runs, f)
        except OSError as e:
            logger.error(f"Could not save result to {self.results_path}: {e}")
            return False
        logger.info(f"Result saved to {self.results_path}")
        return True

    def serve_once(self) -> TransferStats:
        """Accept one client and measure its transfer."""
        conn, addr = self.accept_connection()
        with conn:
            stats = self.receive_rounds(conn, peer=f"{addr[0]}:{addr[1]}")
        self.report(stats)
        return stats

    def serve_forever(self):
        while True:
            self.serve_once()

    def run(self):
        """Run the accept loop until an error or interrupt"""
        self.setup()
        try:
            self.serve_forever()
        finally:
            self.close()

    def close(self):
        if self.socket:
            self.socket.close()
            self.socket = None
