"""photowidget: fetch random photos, cache them on disk and publish them to widget state."""

__version__ = "0.1.0"
