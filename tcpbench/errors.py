from typing import Optional


class BenchError(Exception):
    """A socket call failed. Every BenchError is fatal for the process."""

    exit_code = 1

    def __init__(self, stage: str, cause: Optional[BaseException] = None, message: str = ""):
        self.stage = stage
        self.cause = cause
        if not message:
            message = getattr(cause, "strerror", None) or str(cause or "failed")
        super().__init__(f"{stage}: {message}")


class TransferError(BenchError):
    """A send or receive failed before the round completed."""


class PeerClosedError(TransferError):
    def __init__(self, received: int, expected: int):
        self.received = received
        self.expected = expected
        super().__init__(
            "recv",
            message=f"connection closed by peer after {received} of {expected} bytes",
        )


class ConfigError(ValueError):
    pass


class ReportError(Exception):
    pass
