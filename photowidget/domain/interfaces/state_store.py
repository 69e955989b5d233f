"""Interface for the widget state store.

The store keeps, per resource key, the image fields a widget needs to draw
itself and notifies subscribed consumers when they should redraw.
"""

import abc
from typing import Callable, Dict, Mapping

from photowidget.domain.models.common import WidgetImageState

StateListener = Callable[[Dict[str, WidgetImageState]], None]


class WidgetStateStore(abc.ABC):
    """Abstract Base Class for widget state persistence and notification."""

    @abc.abstractmethod
    async def write_state(self, widget_key: str, fields: Mapping[str, str]) -> None:
        """Writes fields under widget_key, replacing the previous entry.

        Args:
            widget_key: Key of the entry (the resource key).
            fields: The image fields to store.

        Raises:
            StateCorruptError: If existing state cannot be read; nothing is written.
        """
        pass

    @abc.abstractmethod
    async def refresh_all(self) -> None:
        """Signals every subscribed consumer to redraw."""
        pass

    @abc.abstractmethod
    def read_state(self) -> Dict[str, WidgetImageState]:
        """Returns a snapshot of all entries."""
        pass

    @abc.abstractmethod
    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Registers a listener called on refresh.

        Returns:
            A callable that unsubscribes the listener.
        """
        pass
