"""
==============================================================================
Scan Result Dispatcher Tests
==============================================================================

Single-shot vs continuous delivery, timestamps and consumer isolation.

==============================================================================
"""

import asyncio
from datetime import datetime, timedelta, timezone

from expo_scanner.scanner.dispatcher import ScanResultDispatcher
from expo_scanner.scanner.models import DecodeOutcome, ScanPolicy


def dispatch_all(dispatcher, outcomes):
    async def run():
        return [await dispatcher.dispatch(outcome) for outcome in outcomes]
    return asyncio.run(run())


class TestContinuous:
    """Continuous sessions deliver every outcome."""

    def test_n_of_n(self):
        received = []
        dispatcher = ScanResultDispatcher(received.append, ScanPolicy(continuous=True))
        outcomes = [DecodeOutcome.found(f"CODE-{i}") for i in range(5)]

        dispatch_all(dispatcher, outcomes)

        assert [r.payload for r in received] == [f"CODE-{i}" for i in range(5)]
        assert all(r.success for r in received)
        assert dispatcher.dispatched == 5
        assert dispatcher.completed is False

    def test_timestamps_never_decrease(self):
        base = datetime(2025, 4, 1, 12, 0, tzinfo=timezone.utc)
        ticks = iter([base, base - timedelta(seconds=5), base + timedelta(seconds=1)])
        received = []
        dispatcher = ScanResultDispatcher(
            received.append, ScanPolicy(), clock=lambda: next(ticks)
        )

        dispatch_all(dispatcher, [DecodeOutcome.found("A")] * 3)

        stamps = [r.timestamp for r in received]
        assert stamps == [base, base, base + timedelta(seconds=1)]

    def test_unreadable_outcome(self):
        received = []
        dispatcher = ScanResultDispatcher(received.append, ScanPolicy())

        dispatch_all(dispatcher, [DecodeOutcome.unreadable("Invalid QR code format")])

        assert received[0].success is False
        assert received[0].payload is None
        assert received[0].error == "Invalid QR code format"


class TestSingleShot:
    """Single-shot sessions deliver exactly one success."""

    def test_exactly_one_success(self):
        received = []
        completions = []
        dispatcher = ScanResultDispatcher(
            received.append,
            ScanPolicy(continuous=False),
            on_complete=lambda: completions.append(True),
        )

        results = dispatch_all(dispatcher, [
            DecodeOutcome.unreadable("Invalid QR code format"),
            DecodeOutcome.found("FIRST"),
            DecodeOutcome.found("SECOND"),
        ])

        assert [r.success for r in received] == [False, True]
        assert received[1].payload == "FIRST"
        assert results[2] is None
        assert completions == [True]
        assert dispatcher.completed is True

    def test_async_completion_callback_is_awaited(self):
        calls = []

        async def on_complete():
            await asyncio.sleep(0)
            calls.append("done")

        dispatcher = ScanResultDispatcher(
            lambda result: None, ScanPolicy(continuous=False), on_complete=on_complete
        )
        dispatch_all(dispatcher, [DecodeOutcome.found("X")])
        assert calls == ["done"]


class TestConsumerIsolation:
    """Consumer failures never reach the caller."""

    def test_consumer_exception_is_swallowed(self):
        def consumer(result):
            raise ValueError("UI gone")

        dispatcher = ScanResultDispatcher(consumer, ScanPolicy())
        results = dispatch_all(dispatcher, [DecodeOutcome.found("A"), DecodeOutcome.found("B")])

        assert [r.payload for r in results] == ["A", "B"]
        assert dispatcher.dispatched == 2

    def test_async_consumer(self):
        received = []

        async def consumer(result):
            received.append(result.payload)

        dispatcher = ScanResultDispatcher(consumer, ScanPolicy())
        dispatch_all(dispatcher, [DecodeOutcome.found("ASYNC")])
        assert received == ["ASYNC"]

    def test_result_message_format(self):
        received = []
        dispatcher = ScanResultDispatcher(received.append, ScanPolicy())
        dispatch_all(dispatcher, [DecodeOutcome.found("ABC123")])

        message = received[0].to_message()
        assert message["success"] is True
        assert message["payload"] == "ABC123"
        assert message["error"] is None
        assert datetime.fromisoformat(message["timestamp"]) == received[0].timestamp
