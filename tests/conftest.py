from __future__ import annotations

import copy
from typing import List, Optional

import pytest
from botocore.exceptions import ClientError

from realtor_watch.errors import FetchError, NotifyError
from realtor_watch.fetcher.realtor import Listing


def client_error(operation: str, code: str = "InternalServerError") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": "boom"}}, operation)


def listing(listing_id: str) -> Listing:
    return Listing(id=listing_id, relative_path=f"/real-estate/{listing_id}/123-fake-st")


class FakeSource:
    def __init__(self, listings: Optional[List[Listing]] = None, error: Optional[Exception] = None):
        self.listings = listings or []
        self.error = error
        self.calls = 0

    def fetch(self) -> List[Listing]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.listings)


class FakeTable:
    """In-memory stand-in for the DynamoDB table resource."""

    def __init__(self, item: Optional[dict] = None):
        self.item = copy.deepcopy(item)
        self.get_calls = 0
        self.put_calls = 0
        self.fail_get = False
        self.fail_put = False

    def get_item(self, Key: dict, ConsistentRead: bool = False) -> dict:
        self.get_calls += 1
        if self.fail_get:
            raise client_error("GetItem", "ProvisionedThroughputExceededException")
        if self.item is None:
            return {}
        return {"Item": copy.deepcopy(self.item)}

    def put_item(self, Item: dict) -> dict:
        self.put_calls += 1
        if self.fail_put:
            raise client_error("PutItem")
        self.item = copy.deepcopy(Item)
        return {}

    @property
    def stored_ids(self) -> set:
        return set((self.item or {}).get("seen_ids", []))


class FakeNotifier:
    def __init__(self, fail_on: Optional[set] = None):
        self.sent: List[str] = []
        self.attempted: List[str] = []
        self.fail_on = fail_on or set()

    def send(self, listing: Listing) -> None:
        self.attempted.append(listing.id)
        if listing.id in self.fail_on:
            raise NotifyError(f"rejected {listing.id}", listing)
        self.sent.append(listing.id)


@pytest.fixture
def fetch_error() -> FetchError:
    return FetchError("search endpoint unreachable")


class FakeLambdaContext:
    def __init__(self, remaining_ms: int):
        self.remaining_ms = remaining_ms

    def get_remaining_time_in_millis(self) -> int:
        return self.remaining_ms
