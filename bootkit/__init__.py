"""
bootkit: fetch, verify, extract and install third-party artifacts.
"""

__version__ = "0.3.0"
