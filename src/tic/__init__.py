"""tic - work item tracker with offline sync."""

__version__ = "0.1.0"
