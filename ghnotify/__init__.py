"""Monitor GitHub notifications, cache them locally and send desktop alerts for new ones."""

__version__ = "1.0.0"