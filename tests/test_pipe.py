"""Tests for progress pipes."""

import threading

import pytest

from schema_migrate.errors import PipeClosedError
from schema_migrate.pipe import Pipe, close, read_errors, spawn, wait_and_redirect


def produce(pipe: Pipe, *events) -> None:
    """Send events, then close the pipe."""
    for event in events:
        pipe.send(event)
    pipe.close()


class TestPipe:
    """Tests for the Pipe channel."""

    def test_events_arrive_in_order(self):
        """Consumer sees events in send order, then the stream ends."""
        pipe = Pipe()
        spawn(produce, pipe, "a", "b", "c")

        assert list(pipe) == ["a", "b", "c"]

    def test_closed_pipe_stays_closed(self):
        """Iterating a drained pipe again ends immediately."""
        pipe = Pipe()
        spawn(produce, pipe, "only")

        assert list(pipe) == ["only"]
        assert list(pipe) == []
        assert pipe.closed

    def test_send_after_close_raises(self):
        pipe = Pipe("step")
        pipe.close()

        with pytest.raises(PipeClosedError):
            pipe.send("late")

    def test_close_twice_raises(self):
        pipe = Pipe()
        pipe.close()

        with pytest.raises(PipeClosedError):
            pipe.close()

    def test_close_with_error_sends_error_first(self):
        """close(pipe, err) delivers err as the last event."""
        pipe = Pipe()
        error = RuntimeError("fatal")
        spawn(close, pipe, error)

        assert list(pipe) == [error]


class TestReadErrors:
    """Tests for read_errors."""

    def test_only_errors_are_returned(self):
        pipe = Pipe()
        first = ValueError("first")
        second = RuntimeError("second")
        spawn(produce, pipe, "text", first, "more text", second)

        assert read_errors(pipe) == [first, second]

    def test_no_errors(self):
        pipe = Pipe()
        spawn(produce, pipe, "text")

        assert read_errors(pipe) == []


class TestWaitAndRedirect:
    """Tests for forwarding one pipe into another."""

    def _redirect(self, events, cancel=None):
        """Forward events through an inner pipe, collect what reaches outer."""
        inner = Pipe("inner")
        outer = Pipe("outer")
        result = {}

        def supervise():
            result["ok"] = wait_and_redirect(inner, outer, cancel)
            outer.close()

        spawn(produce, inner, *events)
        spawn(supervise)
        forwarded = list(outer)
        return result["ok"], forwarded

    def test_forwards_everything(self):
        ok, forwarded = self._redirect(["a", "b"])

        assert ok is True
        assert forwarded == ["a", "b"]

    def test_error_flips_result_but_keeps_draining(self):
        """Events after an error are still forwarded."""
        error = RuntimeError("step failed")
        ok, forwarded = self._redirect(["file", error, "diagnostics"])

        assert ok is False
        assert forwarded == ["file", error, "diagnostics"]

    def test_cancel_waits_for_step_to_finish(self):
        """An interrupt never cuts the inner stream short."""
        cancel = threading.Event()
        cancel.set()

        ok, forwarded = self._redirect(["file", "done"], cancel)

        assert ok is False
        assert forwarded == ["file", "done"]

    def test_unset_cancel_is_ignored(self):
        ok, _ = self._redirect(["file"], threading.Event())

        assert ok is True
