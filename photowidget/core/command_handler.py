"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py) and delegates the
work to the image work service, the scheduler, the cache and the widget
state store, reporting results through the UserInterface.
"""

import logging
from typing import Optional

from photowidget.core.services.image_work_service import ImageWorkService, work_name_for
from photowidget.domain.interfaces.cache import ImageCache
from photowidget.domain.interfaces.scheduler import WorkScheduler
from photowidget.domain.interfaces.state_store import WidgetStateStore
from photowidget.domain.interfaces.user_interface import UserInterface
from photowidget.domain.models.common import IMAGE_PATH_FIELD
from photowidget.domain.models.errors import InvalidRequestError
from photowidget.domain.models.work import WorkState

logger = logging.getLogger(__name__)

DEFAULT_TAG = "cli"
CACHE_LEVELS = ('l1', 'l2', 'all')


class CommandHandler:
    """Handles incoming commands and delegates to appropriate services."""

    def __init__(
        self,
        work_service: ImageWorkService,
        scheduler: WorkScheduler,
        cache: ImageCache,
        state_store: WidgetStateStore,
        ui: UserInterface,
    ):
        self.work_service = work_service
        self.scheduler = scheduler
        self.cache = cache
        self.state_store = state_store
        self.ui = ui

    async def handle_fetch(
        self,
        width: float,
        height: float,
        tag: str = DEFAULT_TAG,
        force: bool = False,
        density: Optional[float] = None,
        wait: bool = True,
    ) -> Optional[WorkState]:
        """Handles the 'fetch' command: queue the work and, if wait, run it to completion.

        Returns:
            The final work state when waiting, otherwise None.
        """
        logger.info(f"Handling 'fetch' for {width}x{height} (force={force}, density={density}, tag={tag})")
        try:
            if density is not None:
                request = self.work_service.enqueue_dp(width, height, density, tag, force=force)
            else:
                request = self.work_service.enqueue(width, height, tag, force=force)
        except InvalidRequestError as e:
            self.ui.display_error(f"Invalid size: {e}")
            return None

        if not wait:
            self.ui.display_info(f"Queued fetch for {request.resource_key}. Run 'photowidget run' to process it.")
            return None

        await self.scheduler.run_until_idle()

        item = self.scheduler.get_work(work_name_for(request))
        state = item.state if item else None
        if state is WorkState.SUCCEEDED:
            entry = self.state_store.read_state().get(request.resource_key)
            path = entry.get(IMAGE_PATH_FIELD) if entry else None
            self.ui.display_info(f"Image for {request.resource_key} cached at {path}")
        elif state is WorkState.PERMANENT:
            self.ui.display_warning(
                f"Giving up on {request.resource_key} after {item.run_attempt_count} attempt(s); "
                "the widget keeps its previous image."
            )
        elif state is WorkState.CANCELLED:
            self.ui.display_warning(f"Fetch for {request.resource_key} was cancelled.")
        return state

    async def handle_run(self) -> None:
        """Handles the 'run' command: process all pending (persisted) work."""
        pending = [w for w in self.scheduler.list_work() if not w.state.is_finished]
        if not pending:
            self.ui.display_info("No pending work.")
            return
        self.ui.display_info(f"Processing {len(pending)} pending work item(s)...")
        await self.scheduler.run_until_idle()
        for item in pending:
            self.ui.display_output(f"{item.work_name}: {item.state.value} after {item.run_attempt_count} attempt(s)")

    def handle_cancel(self, tag: str) -> int:
        """Handles the 'cancel' command."""
        count = self.work_service.cancel(tag)
        if count:
            self.ui.display_info(f"Cancelled {count} work item(s) tagged '{tag}'.")
        else:
            self.ui.display_info(f"No unfinished work tagged '{tag}'.")
        return count

    def handle_show(self) -> None:
        """Handles the 'show' command."""
        state = self.state_store.read_state()
        if not state:
            self.ui.display_info("Widget state is empty.")
            return
        self.ui.display_widget_state(state)

    async def handle_clear_cache(self, level: str) -> None:
        """Handles the 'clear-cache' command."""
        logger.info(f"Handling 'clear-cache' command for level: {level}")
        if level not in CACHE_LEVELS:
            self.ui.display_error("Invalid cache level. Choose 'l1', 'l2' or 'all'.")
            return
        try:
            await self.cache.clear(level)
            self.ui.display_info(f"Cache level '{level}' cleared successfully.")
        except Exception as e:
            logger.error(f"Failed to clear cache level '{level}': {e}", exc_info=True)
            self.ui.display_error(f"Failed to clear cache: {e}")
