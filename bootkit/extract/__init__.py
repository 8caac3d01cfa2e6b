"""
Extraction Layer.

This package unpacks zip archives, compressed tarballs and disk images into
working directories for the installer.
"""

from .extractor import ArchiveState, Extractor, classify

__all__ = ["ArchiveState", "Extractor", "classify"]
