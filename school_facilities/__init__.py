"""Facility inspection and maintenance tracking core."""

__version__ = "0.1.0"
