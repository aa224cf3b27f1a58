"""Exclude files and folders from iCloud Drive sync with an extended attribute."""

__version__ = "1.0.0"
