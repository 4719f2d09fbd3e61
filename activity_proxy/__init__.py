"""Polling proxy that keeps a merged, always-available view of upstream activities."""

__version__ = "1.0.0"
