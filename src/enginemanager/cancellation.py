"""
Cooperative cancellation for enginemanager operations.

A CancellationToken is threaded explicitly through every suspending call of an
install. Suspension points call `raise_if_cancelled()` before and after I/O;
a cancelled token raises `asyncio.CancelledError`, which is not an `Exception`
subclass and so is never mistaken for a failure by `except Exception` handlers.
"""

import asyncio
from typing import Optional


class CancellationToken:
    """
    A one-shot cancellation flag that may be triggered by the caller or by a deadline.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._deadline_handle: Optional[asyncio.TimerHandle] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True
        if self._deadline_handle is not None:
            self._deadline_handle.cancel()
            self._deadline_handle = None

    def cancel_after(self, delay: float) -> None:
        """
        Cancel the token after `delay` seconds. Must be called from a running event loop.
        """
        loop = asyncio.get_running_loop()
        if self._deadline_handle is not None:
            self._deadline_handle.cancel()
        self._deadline_handle = loop.call_later(delay, self.cancel)

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise asyncio.CancelledError("Operation was cancelled")

    @staticmethod
    def check(token: Optional["CancellationToken"]) -> None:
        """
        Raise if `token` is given and cancelled. Accepts None for callers without a token.
        """
        if token is not None:
            token.raise_if_cancelled()
