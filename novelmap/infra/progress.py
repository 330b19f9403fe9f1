"""Transport-agnostic progress events for long-running extraction work.

Producers call ``emit(stage, detail)``; any number of subscribers (a test
collecting events, the websocket broadcaster, a CLI printer) receive a
``ProgressEvent``. Subscribers may be plain functions or coroutines.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgressEvent:
    stage: str
    detail: str

    def to_dict(self) -> dict:
        return asdict(self)


ProgressCallback = Callable[[ProgressEvent], "Awaitable[None] | None"]


class ProgressChannel:
    """Fan-out of progress events to subscribers."""

    def __init__(self) -> None:
        self._subscribers: list[ProgressCallback] = []

    def subscribe(self, callback: ProgressCallback) -> Callable[[], None]:
        """Register a subscriber. Returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    async def emit(self, stage: str, detail: str) -> None:
        event = ProgressEvent(stage=stage, detail=detail)
        for callback in list(self._subscribers):
            try:
                result = callback(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                # A broken subscriber must not stop the producer
                logger.warning("Progress subscriber failed for stage %s", stage, exc_info=True)
