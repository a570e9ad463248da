"""
Progress pipes.

Provides:
- Pipe: bounded event channel between one producer and one consumer
- close: close a pipe, optionally sending a final error first
- read_errors: drain a pipe, keep only the errors
- wait_and_redirect: forward one pipe into another with interrupt checks
- spawn: run a producer on its own thread
"""

from .pipe import Pipe, close, read_errors, spawn, wait_and_redirect

__all__ = [
    "Pipe",
    "close",
    "read_errors",
    "spawn",
    "wait_and_redirect",
]
