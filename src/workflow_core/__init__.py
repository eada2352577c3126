"""Workflow execution core - validated node graphs run by a queued worker pool."""

__version__ = "0.1.0"
