"""traceaudit: performance-trace audit engine."""

__version__ = "0.1.0"
