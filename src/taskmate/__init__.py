"""Client-side session and synchronization layer for a shared task list."""

__version__ = "0.1.0"
