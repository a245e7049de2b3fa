"""Run-wide cancellation signal."""

import asyncio
import logging
from dataclasses import dataclass, field

log = logging.getLogger(__name__)


@dataclass(kw_only=True)
class CancellationSignal:
    """Flag telling a run to stop launching targets and kill running ones.

    The signal is set at most once per run; the first reason wins. It stays
    set until the next run starts and calls ``reset``.
    """

    reason: str | None = None
    _event: asyncio.Event = field(default_factory=asyncio.Event, repr=False)

    def set(self, reason: str = "cancelled by operator") -> None:
        """Cancel the run; later calls keep the first reason."""
        if self._event.is_set():
            return
        log.warning("Cancelling run: %s", reason)
        self.reason = reason
        self._event.set()

    def is_set(self) -> bool:
        """Whether the run has been cancelled."""
        return self._event.is_set()

    async def wait(self) -> None:
        """Block until the run is cancelled."""
        await self._event.wait()

    def reset(self) -> None:
        """Clear the flag and reason before a new run."""
        self.reason = None
        self._event.clear()
