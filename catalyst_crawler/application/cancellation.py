"""Cooperative cancellation shared by every stage of a run."""

import asyncio
import logging
from typing import Optional

from .exceptions import FetchCancelled


class CancellationScope:
    """
    A checked-not-enforced shutdown signal.

    Stages test ``cancelled`` at their entry and before each dispatch. Work
    already in flight is never interrupted; it finishes and its result is
    still recorded.
    """

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)
        self._event = asyncio.Event()
        self._reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def cancel(self, reason: str = "cancelled"):
        """Signals cancellation. Only the first reason is kept."""
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()
        self.logger.info(f"Cancellation requested: {reason}")

    def raise_if_cancelled(self):
        if self._event.is_set():
            raise FetchCancelled(self._reason)
