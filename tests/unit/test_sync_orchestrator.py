from datetime import UTC, datetime, timedelta

import pytest

from avara.errors import NotFound, RemoteFunctionError
from avara.services.sync.sync_orchestrator import SYNC_FUNCTION_NAME, SyncOrchestrator


def _sync_handler(failing: set[str], counts: dict[str, int]):
    def handler(body):
        if body["feed_id"] in failing:
            raise RemoteFunctionError("sync-feed failed (HTTP 500)", function_name="sync-feed")
        return {"success": True, "count": counts.get(body["feed_id"], 0)}

    return handler


@pytest.mark.asyncio
async def test_sync_all_isolates_failing_feeds(feed_repo, functions):
    feeds = [feed_repo.add("user-1", f"https://example.com/{i}.ics") for i in range(5)]
    failing = {feeds[1].id, feeds[3].id}
    counts = {feed.id: 10 for feed in feeds}
    functions.handlers[SYNC_FUNCTION_NAME] = _sync_handler(failing, counts)

    summary = await SyncOrchestrator(feed_repo, functions).sync_all_feeds_for_user("user-1")

    assert summary.total_feeds == 5
    assert summary.successful_syncs == 3
    assert summary.failed_syncs == 2
    assert summary.total_events == 30
    assert len(functions.calls) == 5
    for feed in feeds:
        synced = feed_repo.feeds[feed.id].last_synced_at
        assert (synced is None) == (feed.id in failing)


@pytest.mark.asyncio
async def test_sync_all_with_no_feeds_returns_zero_summary(feed_repo, functions):
    summary = await SyncOrchestrator(feed_repo, functions).sync_all_feeds_for_user("nobody")

    assert summary.total_feeds == 0
    assert summary.successful_syncs == 0
    assert functions.calls == []


@pytest.mark.asyncio
async def test_unexpected_exception_becomes_failed_result(feed_repo, functions):
    feed = feed_repo.add("user-1", "https://example.com/a.ics")

    def explode(body):
        raise RuntimeError("socket closed")

    functions.handlers[SYNC_FUNCTION_NAME] = explode

    result = await SyncOrchestrator(feed_repo, functions).sync_one_feed(feed.id)

    assert result.success is False
    assert result.count == 0
    assert "socket closed" in result.error


@pytest.mark.asyncio
async def test_reported_failure_is_not_marked_synced(feed_repo, functions):
    feed = feed_repo.add("user-1", "https://example.com/a.ics")
    functions.handlers[SYNC_FUNCTION_NAME] = lambda body: {"success": False, "error": "bad ics"}

    result = await SyncOrchestrator(feed_repo, functions).sync_one_feed(feed.id)

    assert result.success is False
    assert result.error == "bad ics"
    assert "mark_synced" not in feed_repo.calls


@pytest.mark.asyncio
async def test_bookkeeping_failure_keeps_success(feed_repo, functions):
    feed = feed_repo.add("user-1", "https://example.com/a.ics")
    feed_repo.fail_mark_synced = True
    functions.handlers[SYNC_FUNCTION_NAME] = lambda body: {"success": True, "count": 7}

    result = await SyncOrchestrator(feed_repo, functions).sync_one_feed(feed.id)

    assert result.success is True
    assert result.count == 7


@pytest.mark.asyncio
async def test_sync_latest_feed_uses_newest_feed_and_window(feed_repo, functions):
    feed_repo.add("user-1", "https://example.com/old.ics")
    newest = feed_repo.add("user-1", "https://example.com/new.ics")
    functions.handlers[SYNC_FUNCTION_NAME] = lambda body: {"success": True, "count": 2}

    feed_id, result = await SyncOrchestrator(feed_repo, functions).sync_latest_feed("user-1")

    assert feed_id == newest.id
    assert result.success is True
    assert functions.calls == [
        (SYNC_FUNCTION_NAME, {"feed_id": newest.id, "mode": "default", "window_days": 90})
    ]


@pytest.mark.asyncio
async def test_sync_latest_feed_without_feed_raises(feed_repo, functions):
    with pytest.raises(NotFound):
        await SyncOrchestrator(feed_repo, functions).sync_latest_feed("user-1")
    assert functions.calls == []


@pytest.mark.asyncio
async def test_sync_stale_feeds_skips_recent_ones(feed_repo, functions):
    now = datetime.now(UTC)
    never = feed_repo.add("user-1", "https://example.com/a.ics")
    old = feed_repo.add("user-2", "https://example.com/b.ics", last_synced_at=now - timedelta(hours=2))
    feed_repo.add("user-3", "https://example.com/c.ics", last_synced_at=now - timedelta(minutes=5))
    functions.handlers[SYNC_FUNCTION_NAME] = lambda body: {"success": True, "count": 1}

    summary = await SyncOrchestrator(feed_repo, functions).sync_stale_feeds(max_age_minutes=30)

    synced_ids = sorted(body["feed_id"] for _, body in functions.calls)
    assert synced_ids == sorted([never.id, old.id])
    assert summary.successful_syncs == 2


@pytest.mark.asyncio
async def test_sync_stale_feeds_with_zero_age_includes_fresh_feeds(feed_repo, functions):
    fresh = feed_repo.add(
        "user-1", "https://example.com/a.ics", last_synced_at=datetime.now(UTC) - timedelta(seconds=5)
    )
    functions.handlers[SYNC_FUNCTION_NAME] = lambda body: {"success": True, "count": 0}

    summary = await SyncOrchestrator(feed_repo, functions).sync_stale_feeds(max_age_minutes=0)

    assert [body["feed_id"] for _, body in functions.calls] == [fresh.id]
    assert summary.total_feeds == 1
