"""Generic integration nodes."""

from .http_request import HttpRequestNode

__all__ = ["HttpRequestNode"]
