"""commentrank: merge scored comment batches into ranked snapshots."""

from commentrank.version import __version__

__all__ = ["__version__"]
