import os

import pytest

from photowidget.domain.models.errors import InvalidateError
from photowidget.infrastructure.cache.disk_image_cache import DiskImageCache

pytestmark = pytest.mark.asyncio

KEY = "https://picsum.photos/200/101"
IMAGE = b"\xff\xd8\xff\xe0" + b"x" * 2048


@pytest.fixture
def cache(tmp_path):
    instance = DiskImageCache(tmp_path / "images", l1_max_items=2)
    yield instance
    instance.close()


async def test_miss_returns_none(cache):
    assert await cache.get_path(KEY) is None


async def test_put_then_get_path_points_at_the_bytes(cache):
    await cache.put(KEY, IMAGE)

    path = await cache.get_path(KEY)

    assert path is not None
    assert os.path.isfile(path)
    with open(path, 'rb') as f:
        assert f.read() == IMAGE


async def test_l2_hit_fills_l1(cache):
    await cache.put(KEY, IMAGE)
    assert await cache.get_path(KEY, level='l1') is None

    path = await cache.get_path(KEY, level='l2')

    assert await cache.get_path(KEY, level='l1') == path


async def test_l1_is_capped(cache):
    for i in range(3):
        await cache.put(f"{KEY}/{i}", IMAGE)
        await cache.get_path(f"{KEY}/{i}")

    assert len(cache.l1_cache) == 2
    assert f"{KEY}/0" not in cache.l1_cache


async def test_stale_l1_entry_is_dropped(cache):
    await cache.put(KEY, IMAGE)
    path = await cache.get_path(KEY)
    os.remove(path)

    assert await cache.get_path(KEY, level='l1') is None
    assert KEY not in cache.l1_cache


async def test_invalidate_removes_both_levels(cache):
    await cache.put(KEY, IMAGE)
    await cache.get_path(KEY)

    await cache.invalidate(KEY)

    assert await cache.get_path(KEY) is None


async def test_invalidate_missing_key_is_fine(cache):
    await cache.invalidate("https://picsum.photos/1/1")


async def test_invalidate_failure_is_wrapped(cache, mocker):
    mocker.patch.object(cache.disk_cache, 'delete', side_effect=OSError("database is locked"))

    with pytest.raises(InvalidateError) as exc_info:
        await cache.invalidate(KEY)

    assert exc_info.value.resource_key == KEY


async def test_clear_l1_only_keeps_disk_entries(cache):
    await cache.put(KEY, IMAGE)
    await cache.get_path(KEY)

    await cache.clear('l1')

    assert cache.l1_cache == {}
    assert await cache.get_path(KEY) is not None


async def test_clear_all(cache):
    await cache.put(KEY, IMAGE)

    await cache.clear()

    assert await cache.get_path(KEY) is None
