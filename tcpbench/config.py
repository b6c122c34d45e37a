import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional

from tcpbench.errors import ConfigError

# ------------------------------- Constants --------------------------------- #
DEFAULT_PORT = 4444                # Shared by every benchmark pair
SERVER_HOST = "0.0.0.0"            # Servers bind the wildcard address
CLIENT_HOST = "10.0.0.2"           # Benchmark peer on the test network
BACKLOG = 10                       # Pending connections queued by listen()

N_BYTES = 1048576                  # Transfer buffer size (1 MiB)
CLIENT_ROUNDS = 100                # Rounds sent by the throughput client
SERVER_ROUNDS = 1000               # Rounds expected by the throughput server

LATENCY_BYTES = 1                  # Ping-pong payload size
LATENCY_ROUNDS = 1000              # Measured rounds (twice as many are run)

MAX_DATA_SIZE = 15                 # Message server receive buffer
MESSAGE = "Hello, Shyper OS!"      # Sent NUL-terminated by the message client

# Environment overrides, first match wins
ENV_HOST = ("TCPBENCH_HOST",)
ENV_PORT = ("TCPBENCH_PORT",)
ENV_BYTES = ("TCPBENCH_BYTES", "K")
ENV_ROUNDS = ("TCPBENCH_ROUNDS", "R")


@dataclass(frozen=True)
class BenchConfig:
    host: str = SERVER_HOST
    port: int = DEFAULT_PORT
    n_bytes: int = N_BYTES
    n_rounds: int = SERVER_ROUNDS
    backlog: int = BACKLOG
    max_data_size: int = MAX_DATA_SIZE
    message: str = MESSAGE

    def __post_init__(self):
        for name in ("n_bytes", "n_rounds", "backlog", "max_data_size"):
            if getattr(self, name) < 1:
                raise ConfigError(f"{name} must be at least 1, got {getattr(self, name)}")
        if not 0 <= self.port <= 65535:
            raise ConfigError(f"port out of range: {self.port}")

    @property
    def address(self):
        return (self.host, self.port)

    @property
    def total_bytes(self) -> int:
        return self.n_bytes * self.n_rounds

    def with_overrides(self, **overrides) -> "BenchConfig":
        """Return a copy with every override that is not None applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def _lookup(env: Mapping[str, str], names) -> Optional[str]:
    for name in names:
        value = env.get(name)
        if value:
            return value
    return None


def _env_int(env: Mapping[str, str], names) -> Optional[int]:
    value = _lookup(env, names)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        raise ConfigError(f"{names[0]} must be an integer, got {value!r}") from None


def from_env(base: BenchConfig, env: Optional[Mapping[str, str]] = None) -> BenchConfig:
    """Apply TCPBENCH_* (and the short K/R) environment variables to base."""
    if env is None:
        env = os.environ
    return base.with_overrides(
        host=_lookup(env, ENV_HOST),
        port=_env_int(env, ENV_PORT),
        n_bytes=_env_int(env, ENV_BYTES),
        n_rounds=_env_int(env, ENV_ROUNDS),
    )


def server_defaults() -> BenchConfig:
    return BenchConfig()


def client_defaults() -> BenchConfig:
    return BenchConfig(host=CLIENT_HOST, n_rounds=CLIENT_ROUNDS)


def latency_defaults(client: bool = False) -> BenchConfig:
    host = CLIENT_HOST if client else SERVER_HOST
    return BenchConfig(host=host, n_bytes=LATENCY_BYTES, n_rounds=LATENCY_ROUNDS)


def message_defaults(client: bool = False) -> BenchConfig:
    host = CLIENT_HOST if client else SERVER_HOST
    return BenchConfig(host=host)
