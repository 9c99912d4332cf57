from __future__ import annotations

import threading

from gzclp.sync.errors import SyncCancelledError


class CancellationToken:
    """Cooperative cancellation signal for one sync cycle.

    The cycle checks the token between steps; cancelling never interrupts a
    request already in flight.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, stage: str = "") -> None:
        if self._event.is_set():
            suffix = f" during {stage}" if stage else ""
            raise SyncCancelledError(f"Sync cancelled{suffix}")
