"""
Versioned schema migrations: discover -> plan -> apply step by step.

Applies and reverts ordered up/down script pairs against a pluggable
storage backend, streaming progress through pipes with cooperative
interrupt handling.
"""

__version__ = "0.1.0"
