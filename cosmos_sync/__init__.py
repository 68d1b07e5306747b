"""Scheduled synchronization of space data feeds into a cache-aside store."""

__version__ = "0.1.0"
