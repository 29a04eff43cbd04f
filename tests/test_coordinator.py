"""Tests for SyncCoordinator."""

import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from quotesync.book import QuoteBook
from quotesync.errors import RemoteUnavailable
from quotesync.models import Quote
from quotesync.presenter import Presenter
from quotesync.storage import PersistentStore
from quotesync.sync import (
    PushResult,
    RemoteSource,
    SyncCoordinator,
    SyncMode,
    SyncOutcome,
)

LOCAL = [Quote("A", "Motivation"), Quote("B", "Life")]
REMOTE = [Quote("A", "Server")]


def _ack(quote):
    return PushResult(quote=quote, ok=True, status_code=201)


def _fail(quote):
    return PushResult(quote=quote, ok=False, status_code=500, error="HTTP 500")


@pytest.fixture
def store():
    store = PersistentStore(":memory:")
    store.connect()
    store.save(LOCAL)
    yield store
    store.close()


@pytest.fixture
def presenter():
    return MagicMock(spec=Presenter)


@pytest.fixture
def remote():
    remote = MagicMock(spec=RemoteSource)
    remote.endpoint = "http://feed.test/posts"
    remote.fetch_all = AsyncMock(return_value=list(REMOTE))
    remote.push = AsyncMock(side_effect=_ack)
    return remote


@pytest.fixture
def book(store, presenter, remote):
    return QuoteBook(store=store, remote=remote, presenter=presenter)


@pytest.fixture
def coordinator(book, remote):
    return SyncCoordinator(book, remote, interval_seconds=15)


class TestRunSync:
    """Tests for a single sync cycle."""

    @pytest.mark.asyncio
    async def test_success_merges_remote_wins(self, coordinator, book, store, presenter):
        result = await coordinator.run_sync(SyncMode.MANUAL)

        assert result.outcome == SyncOutcome.SUCCESS
        assert result.mode == SyncMode.MANUAL
        assert result.fetched == 1
        assert result.merged == 2
        assert store.load() == [Quote("A", "Server"), Quote("B", "Life")]
        assert book.quotes == [Quote("A", "Server"), Quote("B", "Life")]
        assert book.categories == ["all", "Server", "Life"]
        presenter.notify.assert_called_once_with("Quotes synced with server!")

    @pytest.mark.asyncio
    async def test_pushes_local_only_quotes(self, coordinator, remote):
        result = await coordinator.run_sync()

        remote.push.assert_awaited_once_with(Quote("B", "Life"))
        assert result.pushed == 1
        assert result.push_failures == 0

    @pytest.mark.asyncio
    async def test_push_policy_disabled(self, book, remote):
        coordinator = SyncCoordinator(book, remote, push_local_only=False)

        result = await coordinator.run_sync()

        assert result.outcome == SyncOutcome.SUCCESS
        remote.push.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_push_failure_is_partial(self, coordinator, remote, store, presenter):
        remote.push = AsyncMock(side_effect=_fail)

        result = await coordinator.run_sync()

        assert result.outcome == SyncOutcome.PARTIAL_FAILURE
        assert result.push_failures == 1
        # Merge is still committed
        assert store.load() == [Quote("A", "Server"), Quote("B", "Life")]
        message = presenter.notify.call_args[0][0]
        assert "1 of 1 uploads failed" in message

    @pytest.mark.asyncio
    async def test_push_failure_does_not_stop_other_pushes(self, book, store, remote):
        store.save([Quote("B", "Life"), Quote("C", "Work"), Quote("D", "Work")])
        remote.push = AsyncMock(
            side_effect=[
                _fail(Quote("B", "Life")),
                _ack(Quote("C", "Work")),
                _ack(Quote("D", "Work")),
            ]
        )
        coordinator = SyncCoordinator(book, remote)

        result = await coordinator.run_sync()

        assert remote.push.await_count == 3
        assert result.pushed == 2
        assert result.push_failures == 1
        assert result.outcome == SyncOutcome.PARTIAL_FAILURE

    @pytest.mark.asyncio
    async def test_remote_unavailable(self, coordinator, remote, store, presenter):
        """Test a failed fetch keeps local data and reports failure."""
        remote.fetch_all = AsyncMock(side_effect=RemoteUnavailable("HTTP 503", status_code=503))

        result = await coordinator.run_sync()

        assert result.outcome == SyncOutcome.FAILURE
        assert "503" in result.error
        assert store.load() == LOCAL
        remote.push.assert_not_awaited()
        presenter.notify.assert_called_once()
        assert "failed" in presenter.notify.call_args[0][0]

    @pytest.mark.asyncio
    async def test_remote_unavailable_keeps_repeated_texts(self, book, store, remote):
        """Test a failed fetch does not dedupe or rewrite the stored collection."""
        await book.add("X", "Life")
        await book.add("X", "Work")
        before = store.load()
        remote.fetch_all = AsyncMock(side_effect=RemoteUnavailable("down"))
        coordinator = SyncCoordinator(book, remote)

        with patch.object(book, "commit_merge", wraps=book.commit_merge) as commit:
            result = await coordinator.run_sync()

        assert result.outcome == SyncOutcome.FAILURE
        assert len(before) == 4
        assert store.load() == before
        assert Quote("X", "Work") in store.load()
        commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_local_quote_already_on_server_not_pushed(self, book, store, remote):
        store.save([Quote("A", "Motivation")])
        coordinator = SyncCoordinator(book, remote)

        await coordinator.run_sync()

        remote.push.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_records_last_result(self, coordinator):
        assert coordinator.last_result is None

        result = await coordinator.run_sync()

        assert coordinator.last_result is result
        assert coordinator.is_syncing is False


class TestSingleFlight:
    """Tests that overlapping triggers are dropped."""

    @pytest.mark.asyncio
    async def test_triggers_during_cycle_are_dropped(self, coordinator, book, remote):
        release = asyncio.Event()

        async def slow_fetch():
            await release.wait()
            return list(REMOTE)

        remote.fetch_all = AsyncMock(side_effect=slow_fetch)

        with patch.object(book, "commit_merge", wraps=book.commit_merge) as commit:
            first = asyncio.create_task(coordinator.run_sync(SyncMode.SCHEDULED))
            await asyncio.sleep(0)
            assert coordinator.is_syncing is True

            second = await coordinator.run_sync(SyncMode.MANUAL)
            third = await coordinator.run_sync(SyncMode.SCHEDULED)

            release.set()
            result = await first

        assert second.outcome == SyncOutcome.SKIPPED
        assert third.outcome == SyncOutcome.SKIPPED
        assert result.outcome == SyncOutcome.SUCCESS
        assert remote.fetch_all.await_count == 1
        assert commit.call_count == 1
        assert coordinator.is_syncing is False

    @pytest.mark.asyncio
    async def test_flag_cleared_after_unexpected_error(self, coordinator, remote):
        remote.fetch_all = AsyncMock(side_effect=RuntimeError("boom"))

        with pytest.raises(RuntimeError):
            await coordinator.run_sync()

        assert coordinator.is_syncing is False


class TestPeriodicSync:
    """Tests for scheduled cycles."""

    @pytest.mark.asyncio
    async def test_scheduled_cycles_run(self, book, remote):
        coordinator = SyncCoordinator(book, remote, interval_seconds=0.01)

        await coordinator.start()
        assert coordinator.is_running is True
        await asyncio.sleep(0.1)
        await coordinator.stop()

        assert coordinator.is_running is False
        assert remote.fetch_all.await_count >= 1
        assert coordinator.last_result.mode == SyncMode.SCHEDULED

    @pytest.mark.asyncio
    async def test_stop_before_first_tick(self, book, remote):
        coordinator = SyncCoordinator(book, remote, interval_seconds=60)

        await coordinator.start()
        await coordinator.stop()

        remote.fetch_all.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_start_twice_is_noop(self, book, remote):
        coordinator = SyncCoordinator(book, remote, interval_seconds=60)

        await coordinator.start()
        task = coordinator._task
        await coordinator.start()

        assert coordinator._task is task
        await coordinator.stop()

    @pytest.mark.asyncio
    async def test_stop_lets_cycle_in_flight_finish(self, book, remote):
        release = asyncio.Event()
        started = asyncio.Event()

        async def slow_fetch():
            started.set()
            await release.wait()
            return list(REMOTE)

        remote.fetch_all = AsyncMock(side_effect=slow_fetch)
        coordinator = SyncCoordinator(book, remote, interval_seconds=0.01)

        await coordinator.start()
        await asyncio.wait_for(started.wait(), timeout=1)

        stopping = asyncio.create_task(coordinator.stop())
        await asyncio.sleep(0.05)
        assert not stopping.done()

        release.set()
        await stopping

        assert coordinator.last_result.outcome == SyncOutcome.SUCCESS
        assert remote.fetch_all.await_count == 1

    @pytest.mark.asyncio
    async def test_loop_survives_cycle_errors(self, book, remote):
        remote.fetch_all = AsyncMock(side_effect=RuntimeError("boom"))
        coordinator = SyncCoordinator(book, remote, interval_seconds=0.01)

        await coordinator.start()
        await asyncio.sleep(0.1)
        assert coordinator.is_running is True
        await coordinator.stop()

        assert remote.fetch_all.await_count >= 2


class TestSyncStatus:
    @pytest.mark.asyncio
    async def test_get_sync_status(self, coordinator):
        status = coordinator.get_sync_status()
        assert status["endpoint"] == "http://feed.test/posts"
        assert status["cycles"] == 0
        assert status["last_outcome"] is None

        await coordinator.run_sync()

        status = coordinator.get_sync_status()
        assert status["cycles"] == 1
        assert status["last_outcome"] == "success"
        assert status["last_success"] is not None
