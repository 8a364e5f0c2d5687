"""Exceptions raised by the watcher components."""
from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Optional

if TYPE_CHECKING:
    from realtor_watch.fetcher.realtor import Listing


class WatchError(Exception):
    """Base class for every error raised by realtor_watch."""


class ConfigError(WatchError):
    """Configuration could not be loaded at startup."""

    def __init__(self, message: str, missing: Iterable[str] = ()):
        super().__init__(message)
        self.missing = list(missing)


class FetchError(WatchError):
    """The listing search failed or returned an undecodable response."""


class StoreError(WatchError):
    """The seen-set could not be read or written, or was used before loading."""


class NotifyError(WatchError):
    """The notification transport rejected an alert."""

    def __init__(self, message: str, listing: Optional["Listing"] = None):
        super().__init__(message)
        self.listing = listing


class DeadlineExceeded(WatchError):
    """The invocation ran out of time before the next step could start."""
