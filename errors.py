"""
Exception types raised by the movie watcher pipeline.
"""


class WatcherError(Exception):
    """Base class for pipeline errors"""
    pass


class FetchError(WatcherError):
    """Page or API could not be retrieved (browser session, network, timeout)"""
    pass


class NotFoundError(WatcherError):
    """Metadata source has no usable match for a title"""
    pass


class ParseError(WatcherError):
    """Extraction pattern did not match; callers recover with a default"""
    pass


class PersistenceError(WatcherError):
    """Store write or connection failed"""
    pass
