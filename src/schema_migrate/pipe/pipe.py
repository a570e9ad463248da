"""
Pipe implementation.

A pipe carries progress events from the thread that produces them to the
thread that renders or collects them. Events are one of:
- MigrationFile: a step about to run
- Exception: something went wrong
- str: informational text

The producer owns the pipe and closes it exactly once as its last action.
Consumers iterate the pipe until it is closed.
"""

import logging
import queue
import threading
from collections.abc import Callable, Iterator
from typing import Any, Optional

from ..errors import PipeClosedError

logger = logging.getLogger(__name__)

# Marks the end of the stream; never handed to consumers.
_CLOSED = object()


class Pipe:
    """
    Bounded event channel.

    Holds at most one event in flight, so a producer never runs more than
    one event ahead of its consumer.
    """

    def __init__(self, name: str = "pipe"):
        self.name = name
        self._queue: queue.Queue = queue.Queue(maxsize=1)
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        """Whether the producer has closed the pipe."""
        with self._lock:
            return self._closed

    def send(self, event: Any) -> None:
        """Send an event, blocking while the previous one is unread."""
        with self._lock:
            if self._closed:
                raise PipeClosedError(f"Cannot send on closed pipe '{self.name}'")
        self._queue.put(event)

    def close(self) -> None:
        """Close the pipe. Consumers finish after the pending events."""
        with self._lock:
            if self._closed:
                raise PipeClosedError(f"Pipe '{self.name}' is already closed")
            self._closed = True
        self._queue.put(_CLOSED)

    def __iter__(self) -> Iterator[Any]:
        while True:
            event = self._queue.get()
            if event is _CLOSED:
                # Keep the end marker so later readers stop immediately too
                self._queue.put_nowait(_CLOSED)
                return
            yield event

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"<Pipe {self.name} ({state})>"


def close(pipe: Pipe, err: Optional[Exception] = None) -> None:
    """Send err (if any), then close the pipe."""
    if err is not None:
        pipe.send(err)
    pipe.close()


def read_errors(pipe: Pipe) -> list[Exception]:
    """
    Drain a pipe until it closes.

    Returns:
        The error events, in the order they were sent
    """
    return [event for event in pipe if isinstance(event, Exception)]


def wait_and_redirect(
    inner: Pipe,
    outer: Pipe,
    cancel: Optional[threading.Event] = None,
) -> bool:
    """
    Forward every event from inner to outer until inner closes.

    The cancellation flag is checked at each event boundary. A step that is
    already running is never cut short: once an interrupt has been seen the
    remaining events of inner are still forwarded, and the interrupt is
    reported through the return value.

    Args:
        inner: Pipe of the step being waited on
        outer: Pipe of the caller
        cancel: Interrupt flag, or None when interrupts are not observed

    Returns:
        False if any error was forwarded or an interrupt arrived, else True
    """
    ok = True
    interrupted = False

    for event in inner:
        outer.send(event)
        if isinstance(event, Exception):
            ok = False
        if cancel is not None and not interrupted and cancel.is_set():
            interrupted = True
            logger.warning(f"Interrupt received, waiting for '{inner.name}' to finish")

    if cancel is not None and cancel.is_set():
        return False
    return ok


def spawn(
    target: Callable[..., Any],
    *args: Any,
    name: Optional[str] = None,
    **kwargs: Any,
) -> threading.Thread:
    """Run target(*args, **kwargs) on a new daemon thread."""
    thread = threading.Thread(
        target=target,
        args=args,
        kwargs=kwargs,
        name=name or getattr(target, "__name__", "pipe-producer"),
        daemon=True,
    )
    thread.start()
    return thread
