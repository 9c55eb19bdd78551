"""Cooperative cancellation for agent runs.

A ``CancellationTokenSource`` owns a ``CancellationToken``; the token is
handed to the agent, which forwards it to the model and to tools that
accept it. Cancellation is observed at the next suspension point; a
running tool is never interrupted.

Usage:
    source = CancellationTokenSource()
    task = asyncio.create_task(agent.run_text(AgentInput(..., cancel_token=source.token)))
    source.cancel("user pressed stop")
"""

import asyncio
import logging
from collections.abc import Callable

from toolloop.domain.exceptions import OperationCancelledError

logger = logging.getLogger(__name__)

CancellationCallback = Callable[[str | None], None]


class CancellationToken:
    """Read side of a cancellation signal."""

    def __init__(self) -> None:
        self._cancelled = False
        self._reason: str | None = None
        self._callbacks: list[CancellationCallback] = []
        self._event = asyncio.Event()

    @property
    def is_cancellation_requested(self) -> bool:
        return self._cancelled

    @property
    def reason(self) -> str | None:
        return self._reason

    def on_cancelled(self, callback: CancellationCallback) -> None:
        """Register a callback invoked once on cancellation.

        If the token is already cancelled the callback runs immediately.
        """
        if self._cancelled:
            callback(self._reason)
            return
        self._callbacks.append(callback)

    def raise_if_cancellation_requested(self) -> None:
        """Raise ``OperationCancelledError`` if cancellation was requested."""
        if self._cancelled:
            raise OperationCancelledError(self._reason)

    async def wait(self) -> str | None:
        """Suspend until cancellation is requested; returns the reason."""
        await self._event.wait()
        return self._reason

    def _cancel(self, reason: str | None) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        self._reason = reason
        self._event.set()
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            try:
                callback(reason)
            except Exception:
                logger.exception("Cancellation callback failed")


class CancellationTokenSource:
    """Write side of a cancellation signal."""

    def __init__(self) -> None:
        self._token = CancellationToken()

    @property
    def token(self) -> CancellationToken:
        return self._token

    @property
    def is_cancelled(self) -> bool:
        return self._token.is_cancellation_requested

    def cancel(self, reason: str | None = None) -> None:
        """Request cancellation. Idempotent: later calls have no effect."""
        logger.debug(f"Cancellation requested: {reason}")
        self._token._cancel(reason)


def raise_if_cancelled(token: CancellationToken | None) -> None:
    """Check an optional token at a suspension point."""
    if token is not None:
        token.raise_if_cancellation_requested()
