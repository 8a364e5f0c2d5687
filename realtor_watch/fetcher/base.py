from __future__ import annotations

from typing import List, Protocol

from realtor_watch.fetcher.realtor import Listing


class ListingSource(Protocol):
    def fetch(self) -> List[Listing]:
        """Run one search, raising FetchError if it could not be completed."""
        ...
