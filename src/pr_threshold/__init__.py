"""Complexity thresholds for pull requests, enforced from webhooks."""

__version__ = "0.1.0"
