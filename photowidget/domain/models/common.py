"""Defines common Value Objects used across different domain contexts.

These objects represent simple values like resource keys, cache paths and
the fields written into widget state, ensuring consistency between the fetch
path and the state-write path.
"""

from typing import NewType, TypedDict

# === Core Value Objects ===

# Using NewType for semantic clarity, although they are strings at runtime.
ResourceKey = NewType("ResourceKey", str)      # "<W>/<H>", rounded pixels
ResourceUrl = NewType("ResourceUrl", str)      # <base-url>/<W>/<H>
LocalPath = NewType("LocalPath", str)          # Filesystem path of a cached image
WorkName = NewType("WorkName", str)            # Unique work name (dedup key)
WorkTag = NewType("WorkTag", str)              # Widget id attached to work

# === Caching Context ===
CacheKey = NewType("CacheKey", str)

# === Widget State Context ===
# Field names are persisted as-is and read by widget consumers.
IMAGE_PATH_FIELD = "imagePath"
SOURCE_FIELD = "source"
SOURCE_URL_FIELD = "sourceUrl"

WidgetImageState = TypedDict(
    "WidgetImageState",
    {
        "imagePath": str,
        "source": str,
        "sourceUrl": str,
    },
)


class BackoffPolicy(TypedDict):
    """Value Object representing retry backoff configuration."""
    max_attempts: int
    initial_delay: float
    factor: float
    max_delay: float
