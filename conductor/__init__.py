"""Command orchestration core between a desktop UI and its side processes."""

__version__ = "1.0.0"
