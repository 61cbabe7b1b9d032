"""
Debounced Score Sync

After a recompute yields a score that differs from the stored one, a single delayed
write is scheduled to the score-sync collaborator. Every new schedule() call resets
the timer, and cancel()/aclose() drop any pending write, so at most one write is in
flight per stable value and nothing stale is written after the reviewing session
moves on.

Failures are logged and not retried; the next recompute schedules a fresh attempt
if the discrepancy persists.

The scheduler is owned by the reviewing session, never shared between calls.
"""

import asyncio
import logging
from typing import Any, Callable, Optional, Protocol

from audit_engine.core.config import get_settings
from audit_engine.services.scoring import needs_score_sync

logger = logging.getLogger(__name__)

SYNC_REASON = "Weighted score recalculation"


# =============================================================================
# Collaborator Contracts
# =============================================================================

class ScoreWriter(Protocol):
    """Persists a recalculated score: {callId, newScore, reason}."""

    async def __call__(self, call_id: str, new_score: int, reason: str) -> Any:
        ...


SyncedCallback = Callable[[str, int], None]


# =============================================================================
# Scheduler
# =============================================================================

class ScoreSyncScheduler:
    """
    Cancellable, debounced score write-back for one reviewing session.

    Usage:
        scheduler = ScoreSyncScheduler(update_score, on_synced=remember_score)
        scheduler.schedule(call_id, analysis.score.displayScore, stored, analysis.score.possible)
        ...
        await scheduler.aclose()
    """

    def __init__(
        self,
        writer: ScoreWriter,
        delay: Optional[float] = None,
        tolerance: Optional[int] = None,
        on_synced: Optional[SyncedCallback] = None,
    ):
        settings = get_settings()
        self.writer = writer
        self.delay = settings.score_sync_delay_seconds if delay is None else delay
        self.tolerance = settings.score_sync_tolerance if tolerance is None else tolerance
        self.on_synced = on_synced
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        """True while a write is scheduled or in flight."""
        return self._task is not None and not self._task.done()

    def schedule(self, call_id: str, calculated: int, stored: int, possible: int) -> bool:
        """
        Reset the debounce timer for a freshly computed score.

        Must be called from a running event loop.

        Returns:
            True if a write was scheduled, False if no sync is needed.
        """
        self.cancel()
        if not needs_score_sync(calculated, stored, possible, self.tolerance):
            return False

        logger.debug(f"Scheduling score sync for call {call_id}: {stored}% -> {calculated}%")
        self._task = asyncio.get_running_loop().create_task(
            self._sync(call_id, calculated)
        )
        return True

    async def _sync(self, call_id: str, score: int) -> None:
        await asyncio.sleep(self.delay)
        try:
            await self.writer(call_id, score, SYNC_REASON)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception(f"Score sync failed for call {call_id}; not retrying")
            return

        logger.info(f"Score synced for call {call_id}: {score}%")
        if self.on_synced is not None:
            self.on_synced(call_id, score)

    def cancel(self) -> None:
        """Drop any pending write."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def aclose(self) -> None:
        """Cancel any pending write and wait for the cancellation to settle."""
        task = self._task
        self.cancel()
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            pass
