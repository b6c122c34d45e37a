"""Minimal TCP throughput, latency and message benchmarks."""

__version__ = "0.1.0"
