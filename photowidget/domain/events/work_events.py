"""Domain Events related to scheduled fetch work.

Examples include events for when work is enqueued, started, retried, fails
permanently, succeeds or gets cancelled.
"""

from dataclasses import dataclass, field
import time
from typing import Optional


@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass


@dataclass
class WorkEnqueued(DomainEvent):
    """Event triggered when work is accepted by the scheduler."""
    work_name: str
    resource_key: str
    force: bool
    replaced: bool = False
    timestamp: float = field(default_factory=time.time)


@dataclass
class WorkKept(DomainEvent):
    """Event triggered when a submission is ignored because work is already queued."""
    work_name: str
    timestamp: float = field(default_factory=time.time)


@dataclass
class WorkStarted(DomainEvent):
    """Event triggered when a run of the fetch task begins."""
    work_name: str
    attempt_number: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class WorkSucceeded(DomainEvent):
    work_name: str
    attempt_number: int
    latency_ms: float
    timestamp: float = field(default_factory=time.time)


@dataclass
class WorkRetryScheduled(DomainEvent):
    """Event triggered when a failed run is scheduled to run again."""
    work_name: str
    attempt_number: int
    delay_seconds: float
    timestamp: float = field(default_factory=time.time)


@dataclass
class WorkFailed(DomainEvent):
    """Event triggered when work fails definitively (attempt ceiling reached)."""
    work_name: str
    attempt_number: int
    error_message: Optional[str] = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class WorkCancelled(DomainEvent):
    work_name: str
    reason: str  # 'tag' or 'replaced'
    tag: Optional[str] = None
    timestamp: float = field(default_factory=time.time)
