import pytest
from pathlib import Path
from typing import List
from unittest.mock import AsyncMock, MagicMock

import httpx

from photowidget.domain.interfaces.fetcher import ImageFetcher
from photowidget.domain.interfaces.state_store import WidgetStateStore
from photowidget.domain.interfaces.user_interface import UserInterface
from photowidget.infrastructure.config import settings
from photowidget.infrastructure.config.settings import clear_test_config, set_config_for_testing

FAKE_JPEG = b"\xff\xd8\xff\xe0" + b"fake-jpeg-payload" * 64


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch):
    """Points every path setting at tmp_path and skips reading ~/.photowidget."""
    monkeypatch.setattr(settings, "_loaded", True)
    monkeypatch.setattr(settings, "_overrides", {})
    set_config_for_testing({
        'cache.dir': str(tmp_path / "image_cache"),
        'state.file': str(tmp_path / "widget_state.yaml"),
        'work.dir': str(tmp_path / "work_queue"),
        'retry.initial_backoff_seconds': 0.0,
        'logging.level': "WARNING",
    })
    yield
    clear_test_config()


@pytest.fixture
def mock_fetcher():
    """ImageFetcher whose fetch succeeds with a fixed path."""
    mock = MagicMock(spec=ImageFetcher)
    mock.invalidate = AsyncMock(return_value=None)
    mock.fetch_and_cache = AsyncMock(return_value="/cache/200_101.jpg")
    return mock


@pytest.fixture
def mock_state_store():
    mock = MagicMock(spec=WidgetStateStore)
    mock.write_state = AsyncMock(return_value=None)
    mock.refresh_all = AsyncMock(return_value=None)
    mock.read_state.return_value = {}
    return mock


@pytest.fixture
def mock_ui():
    return MagicMock(spec=UserInterface)


class FakePicsum:
    """httpx handler standing in for picsum.photos.

    Answers `/<W>/<H>` with a redirect to a concrete image, like the real
    service, unless `status` says otherwise.
    """

    def __init__(self, status: int = 200, body: bytes = FAKE_JPEG):
        self.status = status
        self.body = body
        self.requests: List[httpx.Request] = []

    @property
    def size_requests(self) -> List[str]:
        return [r.url.path for r in self.requests if r.url.host == "picsum.photos"]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host == "picsum.photos":
            if self.status != 200:
                return httpx.Response(self.status, content=b"error")
            width, height = request.url.path.strip("/").split("/")
            return httpx.Response(
                302,
                headers={"Location": f"https://fastly.picsum.photos/id/42/{width}/{height}.jpg"},
            )
        return httpx.Response(200, content=self.body, headers={"Content-Type": "image/jpeg"})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def fake_picsum() -> FakePicsum:
    return FakePicsum()


@pytest.fixture
def picsum_factory():
    """Builds FakePicsum instances with a chosen status or body."""
    return FakePicsum
