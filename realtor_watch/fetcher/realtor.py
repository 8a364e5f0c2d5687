from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional

import requests

from realtor_watch.config import SearchCriteria
from realtor_watch.errors import FetchError

logger = logging.getLogger(__name__)

API_URL = "https://api2.realtor.ca/Listing.svc/PropertySearch_Post"
BASE_URL = "https://realtor.ca"
DEFAULT_TIMEOUT = 30


@dataclass(frozen=True)
class Listing:
    id: str
    relative_path: str

    @property
    def url(self) -> str:
        """Absolute, browsable URL of the listing."""
        return BASE_URL + self.relative_path


def _get_session() -> requests.Session:
    """Create a session with the headers the search endpoint expects."""
    session = requests.Session()
    session.headers.update({
        "User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
        "Accept": "application/json, text/plain, */*",
        "Accept-Language": "en-CA,en;q=0.9",
        "Accept-Encoding": "gzip, deflate",
        "Referer": f"{BASE_URL}/",
        "Origin": BASE_URL,
    })
    return session


def _parse_listing(item: Any) -> Optional[Listing]:
    """Parse a single record from the Results array."""
    if not isinstance(item, dict):
        return None
    listing_id = item.get("Id")
    relative_path = item.get("RelativeDetailsURL")
    if listing_id in (None, "") or not isinstance(relative_path, str) or not relative_path:
        return None
    return Listing(id=str(listing_id), relative_path=relative_path)


def parse_listings(data: Any) -> List[Listing]:
    """Decode a search response body into listings, preserving order."""
    if not isinstance(data, dict):
        raise FetchError(f"Unexpected response body: expected an object, got {type(data).__name__}")

    results = data.get("Results")
    if results is None:
        return []
    if not isinstance(results, list):
        raise FetchError(f"Unexpected 'Results' field: expected an array, got {type(results).__name__}")

    listings: List[Listing] = []
    for item in results:
        listing = _parse_listing(item)
        if listing is None:
            logger.warning("Skipping listing record without Id/RelativeDetailsURL: %r", item)
            continue
        listings.append(listing)
    return listings


class RealtorListingSource:
    """Runs one property search against the Realtor.ca API."""

    def __init__(
        self,
        criteria: SearchCriteria,
        api_url: str = API_URL,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.criteria = criteria
        self.api_url = api_url
        self.timeout = timeout
        self._session = session

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = _get_session()
        return self._session

    def fetch(self) -> List[Listing]:
        """Fetch the current page of search results.

        Raises FetchError on network errors, non-success statuses and
        undecodable bodies. No retry is attempted.
        """
        form = self.criteria.to_form()
        logger.debug("Posting search to %s with %s", self.api_url, form)

        try:
            response = self.session.post(self.api_url, data=form, timeout=self.timeout)
        except requests.Timeout as e:
            raise FetchError(f"Search request timed out after {self.timeout}s") from e
        except requests.RequestException as e:
            raise FetchError(f"Search request failed: {e}") from e

        if not response.ok:
            raise FetchError(f"Search request returned HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            body_preview = response.text.replace("\n", " ")[:200]
            raise FetchError(f"Failed to decode search response: {e}. Body preview: {body_preview}") from e

        listings = parse_listings(data)
        logger.info("Fetched %d listings", len(listings))
        return listings
