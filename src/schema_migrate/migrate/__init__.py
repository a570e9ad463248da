"""
Migration orchestration.

Provides:
- Migrator: up, down, migrate, goto, redo, reset (streaming and blocking),
  version and create
- InterruptHandler: graceful ^C handling between steps
"""

from .interrupts import InterruptHandler
from .migrator import Migrator

__all__ = [
    "InterruptHandler",
    "Migrator",
]
