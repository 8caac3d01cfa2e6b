"""
Fetch Layer.

This package turns a URL into a named, verified file on disk.
"""

from .fetcher import Fetcher
from .filename import resolve_filename
from .reporting import LogProgressReporter, NullProgressReporter, ProgressReporter

__all__ = [
    "Fetcher",
    "LogProgressReporter",
    "NullProgressReporter",
    "ProgressReporter",
    "resolve_filename",
]
