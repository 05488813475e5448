"""
Cancellation tokens for voice pipeline calls.

Responsibilities:
- Carry a caller-requested abort (explicit cancel or deadline) into a
  running Playback/Capture call
- Race a pending awaitable (frame send, frame receive) against that abort

Non-responsibilities:
- NO retry logic
- NO decisions about what happens after cancellation
- NO knowledge of transports, codecs or drivers

This module is infrastructure only.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, TypeVar

T = TypeVar("T")


# ---------------------------------------------------------------------
# Cancel token
# ---------------------------------------------------------------------

class CancelToken:
    """
    One-shot cancellation signal for a single pipeline call.

    Lifecycle:
    1. Caller creates a token (optionally with a deadline)
    2. Caller passes it to speak()/listen()
    3a. Caller calls cancel(reason) -> pending waits resolve
    3b. Deadline timer fires -> cancel("deadline")
    4. close() disarms the deadline timer once the call is over

    cancel() is idempotent: the first reason wins.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: str | None = None
        self._timer: asyncio.TimerHandle | None = None

    @classmethod
    def with_timeout(cls, timeout_s: float) -> CancelToken:
        """
        Build a token that cancels itself after timeout_s seconds.

        Must be called from a running event loop.
        """
        token = cls()
        loop = asyncio.get_running_loop()
        token._timer = loop.call_later(max(0.0, timeout_s), token.cancel, "deadline")
        return token

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str = "cancelled") -> None:
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()
        self.close()

    async def wait(self) -> None:
        """Suspend until the token is cancelled."""
        await self._event.wait()

    def close(self) -> None:
        """Disarm the deadline timer. Safe to call repeatedly."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------

async def race(
    awaitable: Awaitable[T],
    token: CancelToken | None,
    *,
    timeout_s: float | None = None,
) -> tuple[str, T | None]:
    """
    Wait for awaitable, the token, or an optional timeout, whichever is first.

    Returns:
        ("done", result)     awaitable finished first
        ("cancelled", None)  token fired first; awaitable was cancelled
        ("timeout", None)    timeout elapsed first; awaitable was cancelled

    Exceptions raised by the awaitable propagate. If the calling task is
    itself cancelled, the pending awaitable is cancelled too.
    """
    work: asyncio.Future[Any] = asyncio.ensure_future(awaitable)
    if token is not None and token.cancelled:
        await _cancel_and_reap(work)
        return "cancelled", None

    waiters: set[asyncio.Future[Any]] = {work}
    cancel_wait: asyncio.Future[Any] | None = None
    if token is not None:
        cancel_wait = asyncio.ensure_future(token.wait())
        waiters.add(cancel_wait)

    try:
        done, _ = await asyncio.wait(
            waiters,
            timeout=timeout_s,
            return_when=asyncio.FIRST_COMPLETED,
        )
    except asyncio.CancelledError:
        await _cancel_and_reap(work)
        raise
    finally:
        if cancel_wait is not None:
            await _cancel_and_reap(cancel_wait)

    if work in done:
        return "done", work.result()

    await _cancel_and_reap(work)
    if cancel_wait is not None and cancel_wait in done:
        return "cancelled", None
    return "timeout", None


async def _cancel_and_reap(fut: asyncio.Future[Any]) -> None:
    """Cancel a future and wait for it to settle, keeping its result quiet."""
    if not fut.done():
        fut.cancel()
        # wait() never raises the loser's CancelledError, so only a
        # cancellation of the calling task escapes here
        await asyncio.wait({fut})
    if not fut.cancelled():
        # Loser of the race; retrieve its failure so it is not reported
        fut.exception()
