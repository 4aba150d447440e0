"""Generic asynchronous client for paginated REST resources."""

__version__ = "1.0.0"
