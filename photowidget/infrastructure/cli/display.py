import logging
from typing import Any, Mapping, Optional

from rich.box import HEAVY, ROUNDED, SIMPLE
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from photowidget.domain.interfaces.user_interface import UserInterface
from photowidget.domain.models.common import (
    IMAGE_PATH_FIELD, SOURCE_FIELD, SOURCE_URL_FIELD, WidgetImageState,
)

logger = logging.getLogger(__name__)


class ConsoleDisplay(UserInterface):
    """Concrete implementation of UserInterface using the rich library for console output."""

    def __init__(self, console: Optional[Console] = None):
        """Initializes the rich Console (an injected one is used as-is)."""
        self.console = console or Console()

    def display_output(self, output: str, **kwargs: Any) -> None:
        """Displays plain output text.

        Args:
            output: The text to display.
            **kwargs: Additional arguments including:
                - style: Rich style for the text
        """
        self.console.print(Text(str(output), style=kwargs.get("style", "")))

    def display_error(self, error_message: str, **kwargs: Any) -> None:
        panel = Panel(
            Text(error_message, style="white"),
            title="[bold red]Error[/bold red]",
            border_style="red",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_info(self, info_message: str, **kwargs: Any) -> None:
        panel = Panel(
            Text(info_message, style="white"),
            title="[bold blue]Info[/bold blue]",
            border_style="blue",
            box=SIMPLE,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        logger.warning(f"Display warning: {warning_message}")
        panel = Panel(
            Text(warning_message, style="white"),
            title="[bold yellow]Warning[/bold yellow]",
            border_style="yellow",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_widget_state(self, state: Mapping[str, WidgetImageState]) -> None:
        """Renders the widget state as a table, one row per resource key."""
        table = Table(title="Widget state", box=ROUNDED, show_lines=False)
        table.add_column("Size", style="bold cyan", no_wrap=True)
        table.add_column("Image path", style="white")
        table.add_column("Source", style="green")
        table.add_column("Source URL", style="blue")
        for key in sorted(state):
            entry = state[key]
            table.add_row(
                key,
                str(entry.get(IMAGE_PATH_FIELD, "")),
                str(entry.get(SOURCE_FIELD, "")),
                str(entry.get(SOURCE_URL_FIELD, "")),
            )
        self.console.print(table)
