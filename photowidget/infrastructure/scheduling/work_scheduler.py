"""In-process retry-scheduler for fetch work.

Work is identified by a unique name: KEEP ignores a submission while work of
that name is unfinished, REPLACE cancels the existing work (even mid-run)
and queues the new request. Failed runs reported as RETRYABLE are queued
again after an exponential backoff. Pending work can be mirrored into a
`diskcache.Index` so it survives a restart.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Set, Tuple

import diskcache as dc

from photowidget.domain.events.work_events import (
    DomainEvent, WorkCancelled, WorkEnqueued, WorkFailed, WorkKept,
    WorkRetryScheduled, WorkStarted, WorkSucceeded,
)
from photowidget.domain.interfaces.scheduler import WorkScheduler
from photowidget.domain.models.common import BackoffPolicy, WorkName, WorkTag
from photowidget.domain.models.errors import InvalidRequestError
from photowidget.domain.models.work import (
    ExistingWorkPolicy, FetchRequest, Outcome, WorkItem, WorkState,
)

logger = logging.getLogger(__name__)

# Mirrors the host job scheduler defaults: 10s, doubling, capped at 5 hours
DEFAULT_BACKOFF = BackoffPolicy(
    max_attempts=10,
    initial_delay=10.0,
    factor=2.0,
    max_delay=5 * 60 * 60.0,
)

WorkRunner = Callable[[FetchRequest, int], Awaitable[Outcome]]
EventListener = Callable[[DomainEvent], None]


class AsyncWorkScheduler(WorkScheduler):
    """Runs unique work on the current event loop with retries and backoff."""

    def __init__(
        self,
        runner: WorkRunner,
        backoff: BackoffPolicy = DEFAULT_BACKOFF,
        store: Optional[dc.Index] = None,
    ):
        """Initializes the scheduler.

        Args:
            runner: Coroutine function running one attempt, given the request
                and the 1-based attempt number.
            backoff: Retry spacing; max_attempts caps runner exceptions too.
            store: Optional persistent index mirroring unfinished work.
        """
        self.runner = runner
        self.backoff = backoff
        self.store = store
        self._work: Dict[str, WorkItem] = {}
        self._running: Dict[str, Tuple[WorkItem, "asyncio.Task[None]"]] = {}
        self._tasks: Set["asyncio.Task[None]"] = set()
        self._listeners: List[EventListener] = []
        self._wakeup: Optional[asyncio.Event] = None

        if self.store is not None:
            self._restore()

        logger.info(
            f"AsyncWorkScheduler initialized: max_attempts={backoff['max_attempts']}, "
            f"initial_backoff={backoff['initial_delay']}s, factor={backoff['factor']}, "
            f"max_backoff={backoff['max_delay']}s, persistent={store is not None}"
        )

    # --- Events ---

    def add_listener(self, listener: EventListener) -> None:
        self._listeners.append(listener)

    def _dispatch(self, event: DomainEvent) -> None:
        logger.debug(f"EVENT: {event}")
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                # Keep notifying the remaining listeners
                logger.error(f"Event listener {listener!r} failed on {type(event).__name__}: {e}", exc_info=True)

    # --- Persistence ---

    def _restore(self) -> None:
        """Loads unfinished work left in the store by a previous process."""
        for name in list(self.store.keys()):
            data = self.store.get(name)
            try:
                item = WorkItem.from_dict(data)
            except (InvalidRequestError, KeyError, TypeError, ValueError) as e:
                logger.error(f"Dropping unreadable persisted work '{name}': {e}")
                self.store.pop(name, None)
                continue
            self._work[item.work_name] = item
        if self._work:
            logger.info(f"Restored {len(self._work)} pending work item(s) from {self.store.directory}")

    def _persist(self, item: WorkItem) -> None:
        if self.store is not None:
            self.store[item.work_name] = item.to_dict()

    def _forget(self, item: WorkItem) -> None:
        if self.store is not None and self._work.get(item.work_name) is item:
            self.store.pop(item.work_name, None)

    def _sync_store(self, item: WorkItem) -> None:
        """Mirrors the outcome of a run into the store; the in-memory state stays authoritative."""
        try:
            if item.state is WorkState.PENDING:
                self._persist(item)
            else:
                self._forget(item)
        except Exception as e:
            logger.error(f"Could not persist '{item.work_name}' after attempt {item.run_attempt_count}: {e}", exc_info=True)

    # --- WorkScheduler Interface Implementation ---

    def submit(
        self,
        work_name: WorkName,
        policy: ExistingWorkPolicy,
        request: FetchRequest,
        tags: Iterable[WorkTag] = (),
    ) -> Optional[WorkItem]:
        existing = self._work.get(work_name)
        replaced = False
        if existing is not None and not existing.state.is_finished:
            if policy is ExistingWorkPolicy.KEEP:
                logger.info(f"Work '{work_name}' is already {existing.state.value}; keeping it.")
                self._dispatch(WorkKept(work_name=work_name))
                return None
            logger.info(f"Replacing {existing.state.value} work '{work_name}'.")
            self._cancel_item(existing, reason="replaced")
            replaced = True

        item = WorkItem(
            work_name=work_name,
            request=request,
            tags=frozenset(tags),
            not_before=time.monotonic(),
        )
        self._work[work_name] = item
        self._persist(item)
        self._dispatch(WorkEnqueued(
            work_name=work_name,
            resource_key=request.resource_key,
            force=request.force,
            replaced=replaced,
        ))
        self._notify()
        return item

    def cancel_all_by_tag(self, tag: WorkTag) -> List[WorkName]:
        cancelled: List[WorkName] = []
        for item in list(self._work.values()):
            if tag in item.tags and not item.state.is_finished:
                self._cancel_item(item, reason="tag", tag=tag)
                cancelled.append(item.work_name)
        if cancelled:
            logger.info(f"Cancelled {len(cancelled)} work item(s) tagged '{tag}'.")
        return cancelled

    def run_attempt_count(self, work_name: WorkName) -> int:
        item = self._work.get(work_name)
        return item.run_attempt_count if item else 0

    def get_work(self, work_name: WorkName) -> Optional[WorkItem]:
        return self._work.get(work_name)

    def list_work(self) -> List[WorkItem]:
        return list(self._work.values())

    def backoff_delay(self, attempt: int) -> float:
        """Delay before the run following failed attempt number `attempt`."""
        delay = self.backoff['initial_delay'] * (self.backoff['factor'] ** max(attempt - 1, 0))
        return min(delay, self.backoff['max_delay'])

    async def run_until_idle(self) -> None:
        # Bound to the running loop, so created here rather than in __init__
        self._wakeup = asyncio.Event()
        while True:
            now = time.monotonic()
            for item in self._due(now):
                self._start(item)

            if not self._tasks and not self._pending():
                break

            self._wakeup.clear()
            waiter = asyncio.ensure_future(self._wakeup.wait())
            try:
                await asyncio.wait(
                    self._tasks | {waiter},
                    timeout=self._next_delay(time.monotonic()),
                    return_when=asyncio.FIRST_COMPLETED,
                )
            finally:
                waiter.cancel()
        logger.debug("Scheduler idle.")

    # --- Internals ---

    def _notify(self) -> None:
        if self._wakeup is not None:
            self._wakeup.set()

    def _pending(self) -> List[WorkItem]:
        return [w for w in self._work.values() if w.state is WorkState.PENDING]

    def _due(self, now: float) -> List[WorkItem]:
        return [w for w in self._pending() if w.not_before <= now]

    def _next_delay(self, now: float) -> Optional[float]:
        waiting = [w.not_before - now for w in self._pending()]
        if not waiting:
            return None
        return max(min(waiting), 0.0)

    def _start(self, item: WorkItem) -> None:
        item.state = WorkState.RUNNING
        task = asyncio.ensure_future(self._execute(item))
        self._running[item.work_name] = (item, task)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _execute(self, item: WorkItem) -> None:
        item.run_attempt_count += 1
        attempt = item.run_attempt_count
        self._dispatch(WorkStarted(work_name=item.work_name, attempt_number=attempt))
        start_time = time.perf_counter()
        try:
            self._persist(item)
            outcome = await self.runner(item.request, attempt)
        except asyncio.CancelledError:
            logger.info(f"Work '{item.work_name}' cancelled during attempt {attempt}.")
            raise
        except Exception as e:
            logger.error(f"Attempt {attempt} of '{item.work_name}' raised: {e}", exc_info=True)
            item.last_error = str(e)
            outcome = Outcome.RETRYABLE if attempt < self.backoff['max_attempts'] else Outcome.PERMANENT
        finally:
            entry = self._running.get(item.work_name)
            if entry is not None and entry[0] is item:
                del self._running[item.work_name]

        if item.state is WorkState.CANCELLED:
            return
        latency_ms = (time.perf_counter() - start_time) * 1000
        self._apply_outcome(item, outcome, latency_ms)

    def _apply_outcome(self, item: WorkItem, outcome: Outcome, latency_ms: float) -> None:
        attempt = item.run_attempt_count
        if outcome is Outcome.SUCCEEDED:
            item.state = WorkState.SUCCEEDED
            self._sync_store(item)
            logger.info(f"Work '{item.work_name}' succeeded on attempt {attempt}.")
            self._dispatch(WorkSucceeded(work_name=item.work_name, attempt_number=attempt, latency_ms=latency_ms))
        elif outcome is Outcome.RETRYABLE:
            delay = self.backoff_delay(attempt)
            item.state = WorkState.PENDING
            item.not_before = time.monotonic() + delay
            self._sync_store(item)
            logger.warning(f"Work '{item.work_name}' failed on attempt {attempt}; retrying in {delay:.2f}s.")
            self._dispatch(WorkRetryScheduled(work_name=item.work_name, attempt_number=attempt, delay_seconds=delay))
        else:
            item.state = WorkState.PERMANENT
            self._sync_store(item)
            logger.error(f"Work '{item.work_name}' failed permanently after {attempt} attempt(s).")
            self._dispatch(WorkFailed(work_name=item.work_name, attempt_number=attempt, error_message=item.last_error))

    def _cancel_item(self, item: WorkItem, reason: str, tag: Optional[str] = None) -> None:
        item.state = WorkState.CANCELLED
        entry = self._running.get(item.work_name)
        if entry is not None and entry[0] is item:
            del self._running[item.work_name]
            entry[1].cancel()
        self._forget(item)
        self._dispatch(WorkCancelled(work_name=item.work_name, reason=reason, tag=tag))
        self._notify()
