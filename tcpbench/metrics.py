import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np

MBIT = 1048576                     # Bits per reported megabit
US_PER_SECOND = 1_000_000


def bandwidth_mbps(total_bytes: int, elapsed: float) -> float:
    """Bandwidth in Mbit/s: (total_bytes * 8) / (1,048,576 * elapsed)."""
    if elapsed <= 0:
        return 0.0
    return (total_bytes * 8) / (MBIT * elapsed)


@dataclass
class TransferStats:
    """
    Timing and byte accounting for one throughput transfer.

    Attributes:
        n_bytes (int): Size of each round.
        n_rounds (int): Rounds the receiver expects.
        peer (str): Address of the sending client.
        total_bytes (int): Bytes received so far; only full rounds count.
        start (float): perf_counter() taken before the first round.
        end (float): perf_counter() taken after the last round.
        round_durations (list[float]): Seconds spent on each round.
        stable_bytes (int): Bytes received while the running total was
            strictly between 1/3 and 2/3 of the expected total.
        stable_time (float): Seconds spent on those rounds.
    """
    n_bytes: int
    n_rounds: int
    peer: str = ""
    total_bytes: int = 0
    start: float = 0.0
    end: float = 0.0
    round_durations: List[float] = field(default_factory=list)
    stable_bytes: int = 0
    stable_time: float = 0.0
    _last: float = field(default=0.0, init=False, repr=False)

    @property
    def expected_bytes(self) -> int:
        return self.n_bytes * self.n_rounds

    def begin(self, now: Optional[float] = None) -> None:
        self.start = time.perf_counter() if now is None else now
        self._last = self.start

    def record_round(self, received: int, now: Optional[float] = None) -> None:
        """Account for one completed round that finished at `now`."""
        if now is None:
            now = time.perf_counter()
        duration = now - self._last
        self._last = now
        self.end = now

        self.total_bytes += received
        self.round_durations.append(duration)

        expected = self.expected_bytes
        if expected / 3 < self.total_bytes < expected * 2 / 3:
            self.stable_bytes += received
            self.stable_time += duration

    def finish(self, now: Optional[float] = None) -> None:
        self.end = time.perf_counter() if now is None else now

    @property
    def elapsed(self) -> float:
        return self.end - self.start

    @property
    def total_kbytes(self) -> int:
        return self.total_bytes // 1024

    @property
    def bandwidth_mbps(self) -> float:
        return bandwidth_mbps(self.total_bytes, self.elapsed)

    @property
    def stable_bandwidth_mbps(self) -> float:
        return bandwidth_mbps(self.stable_bytes, self.stable_time)

    def to_dict(self) -> Dict:
        return {
            "peer": self.peer,
            "n_bytes": self.n_bytes,
            "n_rounds": self.n_rounds,
            "total_bytes": self.total_bytes,
            "elapsed": self.elapsed,
            "bandwidth_mbps": self.bandwidth_mbps,
            "stable_bandwidth_mbps": self.stable_bandwidth_mbps,
            "round_durations": self.round_durations,
        }


@dataclass
class LatencyStats:
    """Round-trip times of the measured half of a latency run."""
    n_bytes: int
    durations_us: List[float] = field(default_factory=list)

    def record(self, seconds: float) -> None:
        self.durations_us.append(seconds * US_PER_SECOND)

    def summary(self) -> Dict[str, float]:
        if not self.durations_us:
            return {"count": 0}
        samples = np.asarray(self.durations_us, dtype=float)
        return {
            "count": int(samples.size),
            "min_us": float(samples.min()),
            "max_us": float(samples.max()),
            "mean_us": float(samples.mean()),
            "median_us": float(np.median(samples)),
            "p99_us": float(np.percentile(samples, 99)),
        }
