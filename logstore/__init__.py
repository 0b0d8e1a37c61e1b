"""Append-only record store with a sparse index, revision checking and benchmarks."""

__version__ = "0.1.0"
__all__ = ["errors", "store", "bench"]