"""
CLI runner module.

Provides commands:
- create: Create a new migration pair
- up / down: Apply all pending / roll back all applied migrations
- migrate <n>: Apply or roll back n migrations
- goto <v>: Migrate to an absolute version
- redo / reset: Re-apply the last / all migrations
- version: Show the current version
"""

from .main import create_cli, main

__all__ = [
    "create_cli",
    "main",
]
