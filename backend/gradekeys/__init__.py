"""Grading key resolution and versioning engine."""

__version__ = "0.1.0"
