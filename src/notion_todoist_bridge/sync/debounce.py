"""Per-entity debouncing of webhook bursts.

Notion tends to deliver several near-identical notifications for the same page
within a few hundred milliseconds (created, content_updated,
properties_updated...). The coordinator collapses them so that each page is
synced at most once per window, always with the most recent event:

- An event for a page with no fresh processing record and nothing pending runs
  immediately, inside the request that delivered it.
- Any other event replaces the page's pending deferral (cancelling its timer)
  and is scheduled to run a full window later.

State is in-process only. Timers die with the process, and separate processes
do not see each other's records.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from notion_todoist_bridge.errors import SyncFailedError
from notion_todoist_bridge.webhook.models import WebhookEvent

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SECONDS = 60.0

# A runner returns an object with ``success`` and ``error`` attributes (SyncResult)
Runner = Callable[[WebhookEvent], Awaitable[Any]]


@dataclass
class PendingDeferral:
    entity_id: str
    latest_event: WebhookEvent
    fire_at: float
    created_at: float
    updated_at: float
    handle: asyncio.TimerHandle | None = None


@dataclass
class DebounceDecision:
    """What the coordinator did with one event."""

    mode: str  # "processed" or "scheduled"
    entity_id: str
    delay_seconds: float = 0.0
    result: Any = None

    @property
    def scheduled(self) -> bool:
        return self.mode == "scheduled"


class DebounceCoordinator:
    def __init__(
        self,
        runner: Runner,
        *,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._runner = runner
        self._window = window_seconds
        self._clock = clock
        self._pending: dict[str, PendingDeferral] = {}
        self._recently_processed: dict[str, float] = {}
        self._tasks: set[asyncio.Task] = set()

    @property
    def window_seconds(self) -> float:
        return self._window

    def get_pending(self, entity_id: str) -> PendingDeferral | None:
        return self._pending.get(entity_id)

    def last_processed(self, entity_id: str) -> float | None:
        return self._recently_processed.get(entity_id)

    def stats(self) -> dict:
        return {
            "currentlyTrackedPages": len(self._recently_processed),
            "pendingEvents": len(self._pending),
        }

    async def handle_event(self, event: WebhookEvent) -> DebounceDecision:
        """Run the event now, or fold it into the entity's pending deferral."""
        now = self._clock()
        self.sweep_expired(now)
        self._prune_processed(now)

        entity_id = event.entity_id
        last = self._recently_processed.get(entity_id)
        cooling = last is not None and now - last < self._window

        if not cooling and entity_id not in self._pending:
            return await self._run_immediately(event, now)

        fire_at = now + self._window
        if cooling:
            fire_at = max(fire_at, last + self._window)
            logger.info(
                "Page %s processed %.1fs ago, deferring latest event",
                entity_id, now - last,
            )
        self._schedule(event, fire_at, now)
        return DebounceDecision(
            mode="scheduled",
            entity_id=entity_id,
            delay_seconds=fire_at - now,
        )

    async def _run_immediately(self, event: WebhookEvent, now: float) -> DebounceDecision:
        entity_id = event.entity_id
        # Recorded before the await so a concurrent event sees the cooldown
        self._recently_processed[entity_id] = now
        logger.info("Processing page %s immediately (%s)", entity_id, event.event_type)

        try:
            result = await self._runner(event)
        except Exception as exc:
            self._rollback(entity_id, now)
            raise SyncFailedError(f"Failed to process page {entity_id}: {exc}") from exc

        if not getattr(result, "success", True):
            self._rollback(entity_id, now)
            error = getattr(result, "error", None) or "unknown error"
            raise SyncFailedError(f"Failed to process page {entity_id}: {error}")

        return DebounceDecision(mode="processed", entity_id=entity_id, result=result)

    def _rollback(self, entity_id: str, recorded_at: float) -> None:
        # A deferred fire may have written a newer record meanwhile
        if self._recently_processed.get(entity_id) == recorded_at:
            del self._recently_processed[entity_id]

    def _schedule(self, event: WebhookEvent, fire_at: float, now: float) -> None:
        entity_id = event.entity_id
        previous = self._pending.pop(entity_id, None)
        if previous is not None:
            if previous.handle is not None:
                previous.handle.cancel()
            logger.info("Replacing pending event for page %s with the latest one", entity_id)

        deferral = PendingDeferral(
            entity_id=entity_id,
            latest_event=event,
            fire_at=fire_at,
            created_at=previous.created_at if previous else now,
            updated_at=now,
        )
        loop = asyncio.get_running_loop()
        deferral.handle = loop.call_later(max(fire_at - now, 0), self._fire, deferral)
        self._pending[entity_id] = deferral

    def _fire(self, deferral: PendingDeferral) -> None:
        """Timer callback: start the deferred run unless the deferral was superseded."""
        if self._pending.get(deferral.entity_id) is not deferral:
            return
        del self._pending[deferral.entity_id]
        if deferral.handle is not None:
            deferral.handle.cancel()
        self._recently_processed[deferral.entity_id] = self._clock()

        task = asyncio.get_running_loop().create_task(self._run_deferred(deferral))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_deferred(self, deferral: PendingDeferral) -> None:
        event = deferral.latest_event
        logger.info("Processing latest event for page %s (%s)", event.entity_id, event.event_type)
        # No rollback of the processing record here: a failed burst keeps its slot
        try:
            result = await self._runner(event)
        except Exception:
            logger.exception(
                "Deferred processing failed for page %s (event %s)",
                event.entity_id, event.event_type,
            )
            return

        if not getattr(result, "success", True):
            logger.error(
                "Deferred processing failed for page %s (event %s): %s",
                event.entity_id, event.event_type, getattr(result, "error", None),
            )

    def sweep_expired(self, now: float | None = None) -> int:
        """Fire every deferral whose time has already passed.

        Catch-up for timers that never ran; returns the number fired.
        """
        now = self._clock() if now is None else now
        overdue = [d for d in self._pending.values() if d.fire_at <= now]
        for deferral in overdue:
            logger.warning("Firing overdue deferral for page %s", deferral.entity_id)
            self._fire(deferral)
        return len(overdue)

    def _prune_processed(self, now: float) -> None:
        cutoff = self._window * 2
        stale = [eid for eid, ts in self._recently_processed.items() if now - ts > cutoff]
        for entity_id in stale:
            del self._recently_processed[entity_id]

    async def drain(self) -> None:
        """Wait for deferred runs that have already started."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        """Cancel all pending timers, finish in-flight runs and reset state."""
        for deferral in self._pending.values():
            if deferral.handle is not None:
                deferral.handle.cancel()
        self._pending.clear()
        await self.drain()
        self._recently_processed.clear()
        logger.info("Debounce coordinator closed")
