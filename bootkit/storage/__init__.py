"""
Storage Layer.

This package handles all data persistence: the configuration file and the
database of recorded installs.
"""

from .config_manager import ConfigManager
from .records import InstallRecord, InstallRecords

__all__ = ["ConfigManager", "InstallRecord", "InstallRecords"]
