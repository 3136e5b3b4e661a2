"""Voice clone job orchestration client."""

__version__ = "0.1.0"
