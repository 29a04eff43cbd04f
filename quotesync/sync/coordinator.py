"""Sync cycles between the local collection and the remote feed.

A cycle fetches the feed, merges it with the persisted collection
(remote wins), commits the result, optionally pushes local-only quotes
back, and reports a status message. Cycles never overlap: a trigger that
arrives while one is running is dropped.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from ..errors import RemoteUnavailable
from .merge import local_only, merge
from .remote_source import PushResult, RemoteSource

if TYPE_CHECKING:
    from ..book import QuoteBook

logger = logging.getLogger(__name__)


class SyncMode(Enum):
    """What triggered a sync cycle."""

    SCHEDULED = "scheduled"
    MANUAL = "manual"


class SyncOutcome(Enum):
    """Outcome of a sync cycle."""

    SUCCESS = "success"
    PARTIAL_FAILURE = "partial_failure"  # Merged, but some pushes failed
    FAILURE = "failure"  # Remote unavailable, local data kept
    SKIPPED = "skipped"  # Another cycle was already running


@dataclass
class SyncResult:
    """Result of a sync cycle."""

    outcome: SyncOutcome
    mode: SyncMode
    fetched: int = 0
    merged: int = 0
    pushes: list[PushResult] = field(default_factory=list)
    message: str = ""
    error: str | None = None
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def pushed(self) -> int:
        return sum(1 for p in self.pushes if p.ok)

    @property
    def push_failures(self) -> int:
        return sum(1 for p in self.pushes if not p.ok)


class SyncCoordinator:
    """Runs manual and periodic sync cycles for a QuoteBook."""

    def __init__(
        self,
        book: "QuoteBook",
        remote: RemoteSource,
        interval_seconds: float = 15,
        push_local_only: bool = True,
    ):
        """Initialize the coordinator.

        Args:
            book: Collection to reconcile; merges are committed through it.
            remote: Feed client.
            interval_seconds: Period of scheduled cycles.
            push_local_only: Whether every cycle uploads the quotes the
                remote does not have.
        """
        self.book = book
        self.remote = remote
        self.interval_seconds = interval_seconds
        self.push_local_only = push_local_only
        self._syncing = False
        self._last_result: SyncResult | None = None
        self._last_success: datetime | None = None
        self._cycles = 0
        self._task: asyncio.Task | None = None
        self._stop_event: asyncio.Event | None = None

    @property
    def is_syncing(self) -> bool:
        return self._syncing

    @property
    def is_running(self) -> bool:
        """Whether periodic cycles are scheduled."""
        return self._task is not None and not self._task.done()

    @property
    def last_result(self) -> SyncResult | None:
        return self._last_result

    async def run_sync(self, mode: SyncMode = SyncMode.MANUAL) -> SyncResult:
        """Run one sync cycle.

        Args:
            mode: What triggered the cycle.

        Returns:
            SyncResult describing the cycle. If a cycle is already in
            progress the trigger is dropped and the outcome is SKIPPED.
        """
        # Checked and set before the first await, so triggers on the same
        # event loop cannot interleave.
        if self._syncing:
            logger.debug(f"Sync already in progress, dropping {mode.value} trigger")
            return SyncResult(
                outcome=SyncOutcome.SKIPPED,
                mode=mode,
                message="Sync already in progress",
            )

        self._syncing = True
        try:
            result = await self._run_cycle(mode)
        finally:
            self._syncing = False

        self._cycles += 1
        self._last_result = result
        if result.outcome != SyncOutcome.FAILURE:
            self._last_success = result.timestamp

        logger.info(
            f"Sync ({mode.value}): {result.outcome.value}, "
            f"fetched={result.fetched}, merged={result.merged}, "
            f"pushed={result.pushed}, push_failures={result.push_failures}"
        )
        return result

    async def _run_cycle(self, mode: SyncMode) -> SyncResult:
        try:
            remote = await self.remote.fetch_all()
        except RemoteUnavailable as e:
            logger.warning(f"Remote unavailable, keeping local quotes: {e}")
            # The stored collection is left exactly as it is
            result = SyncResult(
                outcome=SyncOutcome.FAILURE,
                mode=mode,
                merged=len(self.book.reload_from_store()),
                message="Sync failed: server unavailable. Local quotes kept.",
                error=str(e),
            )
            self.book.presenter.notify(result.message)
            return result

        local = self.book.reload_from_store()
        merged = merge(remote, local)
        self.book.commit_merge(merged)

        pushes: list[PushResult] = []
        if self.push_local_only:
            for quote in local_only(remote, local):
                pushes.append(await self.remote.push(quote))

        result = SyncResult(
            outcome=SyncOutcome.SUCCESS,
            mode=mode,
            fetched=len(remote),
            merged=len(merged),
            pushes=pushes,
        )

        if result.push_failures:
            result.outcome = SyncOutcome.PARTIAL_FAILURE
            result.message = (
                f"Quotes synced with server, but {result.push_failures} of "
                f"{len(pushes)} uploads failed."
            )
        else:
            result.message = "Quotes synced with server!"

        self.book.presenter.notify(result.message)
        return result

    # ==================== Periodic sync ====================

    async def start(self) -> None:
        """Start scheduled cycles as a background task."""
        if self.is_running:
            return

        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run_loop(self._stop_event))
        logger.info(f"Periodic sync started (interval={self.interval_seconds}s)")

    async def stop(self) -> None:
        """Stop scheduling cycles.

        A cycle already in flight runs to completion before this returns.
        """
        if self._stop_event:
            self._stop_event.set()
        if self._task:
            await self._task
            self._task = None
        self._stop_event = None
        logger.info("Periodic sync stopped")

    async def _run_loop(self, stop_event: asyncio.Event) -> None:
        """Run a scheduled cycle every interval until stopped."""
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.interval_seconds)
                break  # Stop event was set
            except asyncio.TimeoutError:
                pass  # Tick

            try:
                await self.run_sync(SyncMode.SCHEDULED)
            except Exception as e:
                logger.error(f"Scheduled sync failed: {e}", exc_info=True)

    def get_sync_status(self) -> dict[str, Any]:
        """Get current sync status.

        Returns:
            Dictionary with sync statistics.
        """
        last = self._last_result
        return {
            "endpoint": self.remote.endpoint,
            "interval_seconds": self.interval_seconds,
            "push_local_only": self.push_local_only,
            "running": self.is_running,
            "syncing": self._syncing,
            "cycles": self._cycles,
            "last_outcome": last.outcome.value if last else None,
            "last_message": last.message if last else None,
            "last_success": self._last_success.isoformat() if self._last_success else None,
        }
