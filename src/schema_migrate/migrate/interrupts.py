"""
Cooperative interrupt handling.

In graceful mode the first ^C sets a cancellation flag: the running step
finishes, the next one is not started. A second ^C raises
KeyboardInterrupt and stops at once. In non-graceful mode nothing is
installed and ^C behaves as usual.
"""

import logging
import signal
import threading
from typing import Optional

logger = logging.getLogger(__name__)


class InterruptHandler:
    """
    Turns SIGINT into a cancellation flag for the duration of one run.

        with InterruptHandler(graceful=True) as interrupts:
            migrator.up(pipe, cancel=interrupts.cancel)

    Signal handlers can only be installed from the main thread; elsewhere
    the flag is still available and can be set with interrupt().
    """

    def __init__(self, graceful: bool = True):
        self.graceful = graceful
        self.event = threading.Event()
        self._previous_handler = None
        self._installed = False

    @property
    def cancel(self) -> Optional[threading.Event]:
        """Flag to pass to a run, None when interrupts are not observed."""
        return self.event if self.graceful else None

    def interrupt(self) -> None:
        """Request the run to stop after the current step."""
        self.event.set()

    def _handle_signal(self, signum, frame) -> None:
        if self.event.is_set():
            logger.warning("Second interrupt, stopping immediately")
            raise KeyboardInterrupt
        logger.warning("Interrupt received, finishing current migration before aborting")
        self.event.set()

    def __enter__(self) -> "InterruptHandler":
        if self.graceful and threading.current_thread() is threading.main_thread():
            self._previous_handler = signal.getsignal(signal.SIGINT)
            signal.signal(signal.SIGINT, self._handle_signal)
            self._installed = True
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        if self._installed:
            signal.signal(signal.SIGINT, self._previous_handler)
            self._installed = False
