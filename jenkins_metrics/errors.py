"""Exceptions raised while fetching and normalizing Jenkins build metrics.

Fetch-level failures (TransportError, DecodeError) abort whatever call hit
them. Per-build failures (BuildExtractionError and its subclasses) abort a
single-build lookup but are only logged while flattening a whole job tree.
"""

from __future__ import annotations


class JenkinsMetricsError(Exception):
    """Base class for every error raised by jenkins_metrics."""


class TransportError(JenkinsMetricsError):
    """The HTTP request failed: network error, timeout or non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class DecodeError(JenkinsMetricsError):
    """The response body is not JSON, or not shaped the way we expect."""


class BuildExtractionError(JenkinsMetricsError):
    """One build could not be turned into a Build record."""

    def __init__(self, message: str, build_id: str = ""):
        super().__init__(message)
        self.build_id = build_id


class ParseError(BuildExtractionError):
    """A build id is not a non-negative integer."""

    def __init__(self, build_id: str):
        super().__init__(f"could not convert id '{build_id}' to int", build_id)


class MetricsNotFound(BuildExtractionError):
    """A build carries no TimeInQueueAction in its actions list."""

    def __init__(self, build_id: str = ""):
        super().__init__("could not find metrics in actions list", build_id)


class MetricsOutOfRange(BuildExtractionError):
    """A millisecond count does not fit in a timedelta."""

    def __init__(self, build_id: str, millis: int):
        super().__init__(f"timing value {millis}ms is out of range", build_id)
        self.millis = millis


class URLConstructionError(JenkinsMetricsError):
    """A per-build endpoint could not be built from the given path."""
