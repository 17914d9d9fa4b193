"""
Exceptions shared by the store, the resolvers and the window.
"""


class StartPageError(Exception):
    """Base exception for start page errors."""
    pass


class MalformedSource(StartPageError):
    """Raised when a shortcut URL has no usable hostname."""

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Cannot parse hostname from {url!r}")


class RemoteUnavailable(StartPageError):
    """Raised when a remote resource could not be fetched."""
    pass


class ImageDecodeError(StartPageError):
    """Raised when fetched bytes are not a decodable image."""
    pass


class CacheStale(StartPageError):
    """Raised when a cached entry no longer renders."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Cached entry {key!r} failed to render")


class CrossOriginBlocked(StartPageError):
    """Raised when a loaded resource has no readable bytes for re-encoding."""
    pass


class PersistenceError(StartPageError):
    """Raised when the key-value store fails."""
    pass


class PersistenceFull(PersistenceError):
    """Raised when a write would exceed the store capacity."""

    def __init__(self, key: str, needed: int, capacity: int):
        self.key = key
        self.needed = needed
        self.capacity = capacity
        super().__init__(f"Store full writing {key!r}: {needed} > {capacity}")
