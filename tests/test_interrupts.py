"""Tests for interrupt handling."""

import signal
import threading

import pytest

from schema_migrate.migrate import InterruptHandler


class TestInterruptHandler:
    """Tests for the SIGINT to cancellation flag bridge."""

    def test_installs_and_restores_handler(self):
        previous = signal.getsignal(signal.SIGINT)

        with InterruptHandler(graceful=True) as interrupts:
            assert signal.getsignal(signal.SIGINT) == interrupts._handle_signal

        assert signal.getsignal(signal.SIGINT) == previous

    def test_first_interrupt_sets_flag(self):
        with InterruptHandler() as interrupts:
            interrupts._handle_signal(signal.SIGINT, None)

            assert interrupts.cancel is interrupts.event
            assert interrupts.event.is_set()

    def test_second_interrupt_stops_immediately(self):
        with InterruptHandler() as interrupts:
            interrupts._handle_signal(signal.SIGINT, None)

            with pytest.raises(KeyboardInterrupt):
                interrupts._handle_signal(signal.SIGINT, None)

    def test_non_graceful_leaves_sigint_alone(self):
        previous = signal.getsignal(signal.SIGINT)

        with InterruptHandler(graceful=False) as interrupts:
            assert signal.getsignal(signal.SIGINT) == previous
            assert interrupts.cancel is None

    def test_outside_main_thread(self):
        """No handler is installed, but interrupt() still works."""
        previous = signal.getsignal(signal.SIGINT)
        seen = {}

        def run():
            with InterruptHandler() as interrupts:
                seen["handler"] = signal.getsignal(signal.SIGINT)
                interrupts.interrupt()
                seen["cancelled"] = interrupts.cancel.is_set()

        thread = threading.Thread(target=run)
        thread.start()
        thread.join()

        assert seen == {"handler": previous, "cancelled": True}

    def test_handlers_are_independent(self):
        """Each run gets its own flag."""
        first = InterruptHandler()
        second = InterruptHandler()

        first.interrupt()

        assert first.event.is_set()
        assert not second.event.is_set()
