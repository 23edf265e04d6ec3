"""Exception hierarchy for the adaptive feed engine."""

from __future__ import annotations


class AdaptiveFeedError(Exception):
    """Base exception for engine errors."""

    pass


class SourceFetchError(AdaptiveFeedError):
    """A content source was unreachable or answered with a non-2xx status."""

    def __init__(self, source: str, message: str, status: int | None = None):
        self.source = source
        self.status = status
        super().__init__(f"{source}: {message}")


class AdLoadError(AdaptiveFeedError):
    """The ad provider failed to produce an instance for a slot."""

    def __init__(self, position: int, message: str):
        self.position = position
        super().__init__(f"Ad load failed at position {position}: {message}")


class ConfigError(AdaptiveFeedError):
    """Invalid engine configuration."""

    pass


class CacheError(AdaptiveFeedError):
    """Storage failure inside the cache layer. Never escapes CacheService."""

    pass
