"""
Source-level error taxonomy.

SkippedSource is not a SourceError: a source without its
per-source configuration is reported as skipped, never as failed.
"""


class SourceError(Exception):
    """Base exception for a source that could not be synced."""

    def __init__(self, source: str, message: str):
        super().__init__(message)
        self.source = source


class SourceUnavailable(SourceError):
    """Transport or HTTP failure reaching the upstream."""

    def __init__(self, source: str, message: str, status_code: int | None = None):
        super().__init__(source, message)
        self.status_code = status_code


class ParseError(SourceError):
    """Upstream payload did not match any expected shape."""

    pass


class SkippedSource(Exception):
    """Required per-source configuration is absent."""

    def __init__(self, source: str, reason: str):
        super().__init__(reason)
        self.source = source
        self.reason = reason
