"""Domain models for fetch requests and their lifecycle in the scheduler."""

import math
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional

from photowidget.domain.models.common import ResourceKey, WorkName, WorkTag
from photowidget.domain.models.errors import InvalidRequestError


def round_half_up(value: float) -> int:
    """Rounds to the nearest integer pixel, halves going up (200.5 -> 201)."""
    # floor(value + 0.5) would round 0.49999999999999994 up
    whole = math.floor(value)
    return int(whole) + (1 if value - whole >= 0.5 else 0)


@dataclass(frozen=True)
class FetchRequest:
    """A request for an image of the given pixel size.

    Immutable once submitted. The rounded size identifies both the remote
    resource and the scheduler dedup key.
    """
    width: float
    height: float
    force: bool = False

    def __post_init__(self) -> None:
        for name in ("width", "height"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidRequestError(f"{name} must be a number, got {value!r}")
            if not math.isfinite(value) or value < 0:
                raise InvalidRequestError(f"{name} must be a non-negative finite number, got {value!r}")

    @classmethod
    def from_dp(cls, width_dp: float, height_dp: float, density: float = 1.0, force: bool = False) -> "FetchRequest":
        """Builds a request from density-independent pixels."""
        if not math.isfinite(density) or density <= 0:
            raise InvalidRequestError(f"density must be a positive finite number, got {density!r}")
        return cls(width=width_dp * density, height=height_dp * density, force=force)

    @property
    def rounded_width(self) -> int:
        return round_half_up(self.width)

    @property
    def rounded_height(self) -> int:
        return round_half_up(self.height)

    @property
    def resource_key(self) -> ResourceKey:
        """Key of the remote resource, its cache slot and its widget state entry."""
        return ResourceKey(f"{self.rounded_width}/{self.rounded_height}")

    @property
    def dedup_key(self) -> str:
        return f"{self.rounded_width}x{self.rounded_height}"

    def to_dict(self) -> Dict[str, Any]:
        return {"width": self.width, "height": self.height, "force": self.force}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FetchRequest":
        return cls(
            width=float(data.get("width", 0.0)),
            height=float(data.get("height", 0.0)),
            force=bool(data.get("force", False)),
        )


class Outcome(str, Enum):
    """Result reported by one run of the fetch task."""
    SUCCEEDED = "succeeded"
    RETRYABLE = "retryable"
    PERMANENT = "permanent"


class ExistingWorkPolicy(str, Enum):
    """What to do when work with the same unique name is already queued."""
    KEEP = "keep"        # Ignore the new submission
    REPLACE = "replace"  # Cancel the existing work and queue the new one


class WorkState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    PERMANENT = "permanent"
    CANCELLED = "cancelled"

    @property
    def is_finished(self) -> bool:
        return self in (WorkState.SUCCEEDED, WorkState.PERMANENT, WorkState.CANCELLED)


@dataclass
class WorkItem:
    """One logical request tracked by the scheduler across retries."""
    work_name: WorkName
    request: FetchRequest
    tags: FrozenSet[WorkTag] = field(default_factory=frozenset)
    run_attempt_count: int = 0
    state: WorkState = WorkState.PENDING
    not_before: float = 0.0
    last_error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "work_name": self.work_name,
            "request": self.request.to_dict(),
            "tags": sorted(self.tags),
            "run_attempt_count": self.run_attempt_count,
            # not_before is monotonic, so the store keeps a wall-clock due time
            "due_at": time.time() + max(self.not_before - time.monotonic(), 0.0),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkItem":
        return cls(
            work_name=WorkName(data["work_name"]),
            request=FetchRequest.from_dict(data["request"]),
            tags=frozenset(WorkTag(t) for t in data.get("tags", [])),
            run_attempt_count=int(data.get("run_attempt_count", 0)),
            not_before=time.monotonic() + max(float(data.get("due_at", 0.0)) - time.time(), 0.0),
        )
