import pytest

from photowidget.core.fetch_task import FetchAndCacheTask
from photowidget.domain.models.errors import FetchError, InvalidateError
from photowidget.domain.models.work import FetchRequest, Outcome

pytestmark = pytest.mark.asyncio

EXPECTED_STATE = {
    "imagePath": "/cache/200_101.jpg",
    "source": "Picsum Photos",
    "sourceUrl": "https://picsum.photos/",
}


@pytest.fixture
def task(mock_fetcher, mock_state_store):
    return FetchAndCacheTask(fetcher=mock_fetcher, state_store=mock_state_store)


async def test_success_publishes_cached_path(task, mock_fetcher, mock_state_store):
    """200.4 x 100.6 resolves to 200/101 and lands in widget state."""
    outcome = await task.run(FetchRequest(width=200.4, height=100.6), run_attempt_count=1)

    assert outcome is Outcome.SUCCEEDED
    mock_fetcher.fetch_and_cache.assert_awaited_once_with("200/101")
    mock_state_store.write_state.assert_awaited_once_with("200/101", EXPECTED_STATE)
    mock_state_store.refresh_all.assert_awaited_once()


async def test_state_key_matches_resource_key(task, mock_fetcher, mock_state_store):
    for width, height in [(0, 0), (1.5, 2.5), (319.99, 640.01), (1080, 1920)]:
        mock_fetcher.reset_mock()
        mock_state_store.reset_mock()
        request = FetchRequest(width=width, height=height)

        await task.run(request, run_attempt_count=1)

        fetched_key = mock_fetcher.fetch_and_cache.await_args.args[0]
        written_key = mock_state_store.write_state.await_args.args[0]
        assert fetched_key == written_key == request.resource_key


async def test_written_fields_are_exactly_the_image_fields(task, mock_state_store):
    await task.run(FetchRequest(width=200.4, height=100.6), run_attempt_count=1)

    fields = mock_state_store.write_state.await_args.args[1]
    assert set(fields) == {"imagePath", "source", "sourceUrl"}


async def test_not_forced_never_invalidates(task, mock_fetcher):
    await task.run(FetchRequest(width=200, height=100, force=False), run_attempt_count=1)
    mock_fetcher.invalidate.assert_not_awaited()


async def test_forced_invalidates_before_fetching(task, mock_fetcher):
    calls = []
    mock_fetcher.invalidate.side_effect = lambda key: calls.append(("invalidate", key))

    async def fetch(key):
        calls.append(("fetch", key))
        return "/cache/200_100.jpg"

    mock_fetcher.fetch_and_cache.side_effect = fetch

    outcome = await task.run(FetchRequest(width=200, height=100, force=True), run_attempt_count=1)

    assert outcome is Outcome.SUCCEEDED
    assert calls == [("invalidate", "200/100"), ("fetch", "200/100")]


async def test_invalidation_failure_is_not_fatal(task, mock_fetcher, mock_state_store):
    mock_fetcher.invalidate.side_effect = InvalidateError("200/101", OSError("database is locked"))

    outcome = await task.run(FetchRequest(width=200.4, height=100.6, force=True), run_attempt_count=1)

    assert outcome is Outcome.SUCCEEDED
    mock_fetcher.invalidate.assert_awaited_once_with("200/101")
    mock_fetcher.fetch_and_cache.assert_awaited_once_with("200/101")
    mock_state_store.write_state.assert_awaited_once()


async def test_forced_invalidates_even_when_fetch_fails(task, mock_fetcher):
    mock_fetcher.fetch_and_cache.side_effect = FetchError("10/10", "HTTP 503", status_code=503)

    outcome = await task.run(FetchRequest(width=10, height=10, force=True), run_attempt_count=1)

    assert outcome is Outcome.RETRYABLE
    mock_fetcher.invalidate.assert_awaited_once_with("10/10")


@pytest.mark.parametrize("attempt", range(1, 10))
async def test_failures_before_the_ceiling_are_retryable(task, mock_fetcher, mock_state_store, attempt):
    mock_fetcher.fetch_and_cache.side_effect = FetchError("200/101", "connection reset")

    outcome = await task.run(FetchRequest(width=200.4, height=100.6), run_attempt_count=attempt)

    assert outcome is Outcome.RETRYABLE
    mock_state_store.write_state.assert_not_awaited()
    mock_state_store.refresh_all.assert_not_awaited()


@pytest.mark.parametrize("attempt", [10, 11, 25])
async def test_failures_at_the_ceiling_are_permanent(task, mock_fetcher, attempt):
    mock_fetcher.fetch_and_cache.side_effect = FetchError("200/101", "connection reset")

    outcome = await task.run(FetchRequest(width=200.4, height=100.6), run_attempt_count=attempt)

    assert outcome is Outcome.PERMANENT


async def test_missing_path_after_success_never_succeeds(task, mock_fetcher, mock_state_store):
    mock_fetcher.fetch_and_cache.return_value = None

    assert await task.run(FetchRequest(width=50, height=50), run_attempt_count=1) is Outcome.RETRYABLE
    assert await task.run(FetchRequest(width=50, height=50), run_attempt_count=10) is Outcome.PERMANENT
    mock_state_store.write_state.assert_not_awaited()


async def test_unexpected_errors_follow_retry_policy(task, mock_fetcher):
    mock_fetcher.fetch_and_cache.side_effect = RuntimeError("boom")

    assert await task.run(FetchRequest(width=50, height=50), run_attempt_count=3) is Outcome.RETRYABLE


async def test_state_write_failure_is_retryable(task, mock_state_store):
    mock_state_store.write_state.side_effect = OSError("disk full")

    outcome = await task.run(FetchRequest(width=50, height=50), run_attempt_count=1)

    assert outcome is Outcome.RETRYABLE
    mock_state_store.refresh_all.assert_not_awaited()


async def test_custom_attribution_and_ceiling(mock_fetcher, mock_state_store):
    task = FetchAndCacheTask(
        fetcher=mock_fetcher,
        state_store=mock_state_store,
        max_attempts=3,
        source_name="Example",
        source_url="https://example.org/",
    )
    await task.run(FetchRequest(width=200.4, height=100.6), run_attempt_count=1)
    fields = mock_state_store.write_state.await_args.args[1]
    assert fields["source"] == "Example"
    assert fields["sourceUrl"] == "https://example.org/"

    mock_fetcher.fetch_and_cache.side_effect = FetchError("200/101", "timeout")
    assert await task.run(FetchRequest(width=200.4, height=100.6), run_attempt_count=2) is Outcome.RETRYABLE
    assert await task.run(FetchRequest(width=200.4, height=100.6), run_attempt_count=3) is Outcome.PERMANENT


async def test_max_attempts_must_be_positive(mock_fetcher, mock_state_store):
    with pytest.raises(ValueError):
        FetchAndCacheTask(fetcher=mock_fetcher, state_store=mock_state_store, max_attempts=0)
