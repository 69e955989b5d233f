"""Main entry point when executing photowidget as a package.

This allows running the package using python -m photowidget.
"""

from photowidget.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
