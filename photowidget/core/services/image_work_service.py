"""Application Service: queueing and cancelling image fetch work.

Turns a widget's size into unique scheduler work. Non-forced requests keep
whatever is already queued for the same size; forced requests replace it.
Work is tagged with the widget id so a removed widget can cancel its work.
"""

import logging
from typing import Optional, Tuple

from photowidget.domain.interfaces.scheduler import WorkScheduler
from photowidget.domain.models.common import WorkName, WorkTag
from photowidget.domain.models.work import ExistingWorkPolicy, FetchRequest, WorkState

logger = logging.getLogger(__name__)

UNIQUE_WORK_NAME = "ImageWorker"


def work_name_for(request: FetchRequest) -> WorkName:
    """Unique work name (dedup key) for the request's rounded size."""
    return WorkName(f"{UNIQUE_WORK_NAME}-{request.dedup_key}")


class ImageWorkService:
    """Enqueues and cancels fetch work on a WorkScheduler."""

    def __init__(self, scheduler: WorkScheduler):
        self.scheduler = scheduler

    def enqueue(self, width: float, height: float, tag: str, force: bool = False) -> FetchRequest:
        """Queues a fetch for a pixel size.

        Raises:
            InvalidRequestError: If width or height is not a non-negative finite number.
        """
        request = FetchRequest(width=width, height=height, force=force)
        self.submit(request, tag)
        return request

    def enqueue_dp(
        self, width_dp: float, height_dp: float, density: float, tag: str, force: bool = False
    ) -> FetchRequest:
        """Queues a fetch for a size given in density-independent pixels."""
        request = FetchRequest.from_dp(width_dp, height_dp, density=density, force=force)
        self.submit(request, tag)
        return request

    def submit(self, request: FetchRequest, tag: str) -> WorkName:
        work_name = work_name_for(request)
        policy = ExistingWorkPolicy.REPLACE if request.force else ExistingWorkPolicy.KEEP
        queued = self.scheduler.submit(work_name, policy, request, tags=(WorkTag(tag),))
        if queued is None:
            logger.info(f"Fetch for {request.resource_key} already queued; new request ignored.")
        else:
            logger.info(f"Queued fetch for {request.resource_key} as '{work_name}' (policy={policy.value}, tag={tag}).")
        return work_name

    def cancel(self, tag: str) -> int:
        """Cancels any ongoing work for the widget. Returns how many items were cancelled."""
        cancelled = self.scheduler.cancel_all_by_tag(WorkTag(tag))
        return len(cancelled)

    def status(self, width: float, height: float) -> Tuple[Optional[WorkState], int]:
        """Current state and attempt count of the work for a size."""
        work_name = work_name_for(FetchRequest(width=width, height=height))
        item = self.scheduler.get_work(work_name)
        if item is None:
            return None, 0
        return item.state, self.scheduler.run_attempt_count(work_name)
