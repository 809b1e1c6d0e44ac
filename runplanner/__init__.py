"""Running route candidate generation on top of open map services."""

__version__ = "1.0.0"
