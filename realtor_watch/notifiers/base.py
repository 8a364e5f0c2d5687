from __future__ import annotations

from typing import Protocol

from realtor_watch.fetcher.realtor import Listing


class Notifier(Protocol):
    def send(self, listing: Listing) -> None:
        """Deliver one alert, raising NotifyError if it was rejected."""
        ...
