"""Error types raised by the fetch task and its collaborators."""

from typing import Optional


class PhotoWidgetError(Exception):
    """Base class for all photowidget errors."""


class InvalidRequestError(PhotoWidgetError, ValueError):
    """Raised when a fetch request carries an unusable size."""


class FetchError(PhotoWidgetError):
    """The remote fetch or the cache write that follows it failed."""

    def __init__(self, resource_key: str, message: str, status_code: Optional[int] = None):
        self.resource_key = resource_key
        self.status_code = status_code
        super().__init__(f"Failed to fetch '{resource_key}': {message}")


class CacheMiss(FetchError):
    """The fetcher reported success but no cached file could be found."""

    def __init__(self, resource_key: str):
        super().__init__(resource_key, "couldn't find cached file")


class InvalidateError(PhotoWidgetError):
    """Removing a cache entry failed. Never fatal."""

    def __init__(self, resource_key: str, reason: Exception):
        self.resource_key = resource_key
        self.reason = reason
        super().__init__(f"Failed to invalidate '{resource_key}': {reason}")


class StateCorruptError(PhotoWidgetError):
    """The widget state file exists but cannot be parsed; it is left untouched."""

    def __init__(self, state_file: str, reason: object):
        self.state_file = state_file
        self.reason = reason
        super().__init__(f"Widget state file '{state_file}' is unreadable: {reason}")
