"""
==============================================================================
Scan Result Dispatcher Module
==============================================================================

Turns decode outcomes into ScanResult records and hands them to the one
registered consumer.

Policy:
-------
- continuous=True:  every successful decode is dispatched, no dedup
- continuous=False: the first success is dispatched, later ones are
                    dropped and ``on_complete`` ends the session;
                    unreadable attempts do not use up the shot

Consumer errors are logged and swallowed; nothing raised by the consumer
reaches the decode loop.

==============================================================================
"""

from __future__ import annotations

import inspect
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional, Union

from expo_scanner.core.exceptions import ErrorCode
from expo_scanner.scanner.models import DecodeOutcome, ScanPolicy, ScanResult


# Module logger
logger = logging.getLogger(__name__)

ScanConsumer = Callable[[ScanResult], Union[None, Awaitable[Any]]]
CompletionCallback = Callable[[], Union[None, Awaitable[Any]]]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ScanResultDispatcher:
    """
    Dispatcher bound to one session's policy.

    Attributes:
        dispatched: Number of results handed to the consumer
        completed: True once a single-shot session got its result
    """

    def __init__(
        self,
        consumer: ScanConsumer,
        policy: ScanPolicy,
        on_complete: Optional[CompletionCallback] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._consumer = consumer
        self._policy = policy
        self._on_complete = on_complete
        self._clock = clock
        self._last_timestamp: Optional[datetime] = None
        self.dispatched = 0
        self.completed = False

    def _stamp(self) -> datetime:
        # Wall clock can step backwards; results must not.
        now = self._clock()
        if self._last_timestamp is not None and now < self._last_timestamp:
            now = self._last_timestamp
        self._last_timestamp = now
        return now

    async def dispatch(self, outcome: DecodeOutcome) -> Optional[ScanResult]:
        """
        Dispatch one decode outcome.

        Returns:
            The ScanResult handed to the consumer, or None if it was dropped
        """
        if self.completed:
            logger.debug("Single-shot already used; result dropped")
            return None

        result = ScanResult(
            success=outcome.success,
            payload=outcome.payload,
            error=None if outcome.success else (outcome.error or "Invalid QR code format"),
            timestamp=self._stamp(),
        )

        if not result.success:
            logger.debug(f"{ErrorCode.DECODE_ATTEMPT_FAILED}: {result.error}")

        await self._deliver(result)
        self.dispatched += 1

        if result.success and not self._policy.continuous:
            self.completed = True
            logger.info("🎯 Single-shot result dispatched; stopping scanner")
            if self._on_complete is not None:
                await _maybe_await(self._on_complete())

        return result

    async def _deliver(self, result: ScanResult) -> None:
        try:
            await _maybe_await(self._consumer(result))
        except Exception:
            logger.exception(f"{ErrorCode.DISPATCH_CONSUMER_FAILED}: scan consumer raised")


async def _maybe_await(value: Union[None, Awaitable[Any]]) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value
