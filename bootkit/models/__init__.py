"""
Data Models Layer.

This package contains the data structures used throughout the application:
the Pydantic configuration and manifest models, and the dataclasses that
describe a download and its progress.
"""

from .config import BootkitConfig
from .fetch import FetchedPayload, FetchRequest
from .manifest import Manifest
from .progress import ProgressSnapshot, ProgressState

__all__ = [
    "BootkitConfig",
    "FetchRequest",
    "FetchedPayload",
    "Manifest",
    "ProgressSnapshot",
    "ProgressState",
]
