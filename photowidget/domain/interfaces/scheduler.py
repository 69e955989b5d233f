"""Interface for the retry-scheduler that runs fetch work."""

import abc
from typing import Iterable, List, Optional

from photowidget.domain.models.common import WorkName, WorkTag
from photowidget.domain.models.work import ExistingWorkPolicy, FetchRequest, WorkItem


class WorkScheduler(abc.ABC):
    """Queues fetch requests under unique names and retries failed runs."""

    @abc.abstractmethod
    def submit(
        self,
        work_name: WorkName,
        policy: ExistingWorkPolicy,
        request: FetchRequest,
        tags: Iterable[WorkTag] = (),
    ) -> Optional[WorkItem]:
        """Submits a request as unique work.

        Args:
            work_name: Dedup key; at most one unfinished item per name.
            policy: KEEP ignores the submission if work is unfinished,
                REPLACE cancels the existing work first.
            request: The request to run.
            tags: Tags usable for cancellation.

        Returns:
            The queued item, or None if the submission was ignored.
        """
        pass

    @abc.abstractmethod
    def cancel_all_by_tag(self, tag: WorkTag) -> List[WorkName]:
        """Cancels all unfinished work carrying tag. Returns the cancelled names."""
        pass

    @abc.abstractmethod
    def run_attempt_count(self, work_name: WorkName) -> int:
        """Number of runs started so far for the named work (0 if unknown)."""
        pass

    @abc.abstractmethod
    def get_work(self, work_name: WorkName) -> Optional[WorkItem]:
        pass

    @abc.abstractmethod
    def list_work(self) -> List[WorkItem]:
        """All tracked work, finished or not."""
        pass

    @abc.abstractmethod
    async def run_until_idle(self) -> None:
        """Runs due work, waiting out backoff delays, until nothing is pending."""
        pass
