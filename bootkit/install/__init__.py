"""
Installation Layer.

This package places extracted files into a destination tree according to a
manifest, and removes them again.
"""

from .installer import Installer
from .mapping import InstallMapping, plan_install, plan_uninstall

__all__ = ["InstallMapping", "Installer", "plan_install", "plan_uninstall"]
