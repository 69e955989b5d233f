"""Interface for reporting to the user.

Defines the contract for displaying information, errors, warnings and the
widget state, allowing different UI implementations.
"""

import abc
from typing import Any, Mapping

from photowidget.domain.models.common import WidgetImageState


class UserInterface(abc.ABC):
    """Abstract Base Class for user interaction."""

    @abc.abstractmethod
    def display_output(self, output: str, **kwargs: Any) -> None:
        """Displays standard output to the user.

        Args:
            output: The text to display.
            **kwargs: Additional arguments for formatting (e.g., title).
        """
        pass

    @abc.abstractmethod
    def display_error(self, error_message: str, **kwargs: Any) -> None:
        pass

    @abc.abstractmethod
    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        pass

    @abc.abstractmethod
    def display_info(self, info_message: str, **kwargs: Any) -> None:
        pass

    @abc.abstractmethod
    def display_widget_state(self, state: Mapping[str, WidgetImageState]) -> None:
        """Displays the widget state entries, one row per resource key."""
        pass
