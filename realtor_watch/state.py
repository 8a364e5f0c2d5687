"""Seen-set persistence for duplicate suppression."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, FrozenSet, Mapping, Optional, Set

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from realtor_watch.config import AppConfig
from realtor_watch.errors import StoreError

logger = logging.getLogger(__name__)

PARTITION_KEY_NAME = "partition_key"
PARTITION_KEY_VALUE = "seen-listings"
SEEN_IDS_NAME = "seen_ids"


@dataclass
class SeenSet:
    """The identifiers that have already triggered an alert."""

    seen_ids: Set[str] = field(default_factory=set)

    def to_item(self) -> dict:
        return {
            PARTITION_KEY_NAME: PARTITION_KEY_VALUE,
            SEEN_IDS_NAME: sorted(self.seen_ids),
        }

    @classmethod
    def from_item(cls, item: Optional[Mapping[str, Any]]) -> "SeenSet":
        """Decode a stored record; an absent record is an empty set."""
        if item is None:
            return cls()

        raw_ids = item.get(SEEN_IDS_NAME)
        if raw_ids is None:
            return cls()
        if not isinstance(raw_ids, (list, set, tuple)):
            raise StoreError(f"Malformed seen-set record: '{SEEN_IDS_NAME}' is a {type(raw_ids).__name__}")

        bad = [value for value in raw_ids if not isinstance(value, str)]
        if bad:
            raise StoreError(f"Malformed seen-set record: non-string identifiers {bad[:5]!r}")

        return cls(seen_ids=set(raw_ids))


class SeenStore:
    """Working copy of the seen-set backed by a single DynamoDB item.

    The record is read once, on the first load, and written once by flush().
    """

    def __init__(self, table: Any):
        self.table = table
        self._seen: Optional[SeenSet] = None

    @property
    def loaded(self) -> bool:
        return self._seen is not None

    @property
    def seen_ids(self) -> FrozenSet[str]:
        if self._seen is None:
            return frozenset()
        return frozenset(self._seen.seen_ids)

    def load(self) -> None:
        """Read the seen-set record. Later calls are no-ops."""
        if self._seen is not None:
            return

        try:
            response = self.table.get_item(
                Key={PARTITION_KEY_NAME: PARTITION_KEY_VALUE},
                ConsistentRead=True,
            )
        except (ClientError, BotoCoreError) as e:
            raise StoreError(f"Failed to read seen-set: {e}") from e

        item = response.get("Item")
        seen = SeenSet.from_item(item)
        if item is None:
            logger.info("No seen-set record found, starting fresh")
        else:
            logger.info("Loaded %d seen listing IDs", len(seen.seen_ids))
        self._seen = seen

    def is_seen(self, listing_id: str) -> bool:
        """Check if a listing has already been alerted on."""
        self.load()
        return listing_id in self._seen.seen_ids

    def mark_seen(self, listing_id: str) -> None:
        """Record a listing as alerted in the working copy."""
        if self._seen is None:
            raise StoreError("seen set is not loaded yet")
        self._seen.seen_ids.add(listing_id)

    def flush(self) -> None:
        """Overwrite the stored record with the working copy."""
        if self._seen is None:
            # Writing here would replace the stored set with an empty one
            logger.debug("Seen-set was never loaded, nothing to flush")
            return

        try:
            self.table.put_item(Item=self._seen.to_item())
        except (ClientError, BotoCoreError) as e:
            raise StoreError(f"Failed to write seen-set: {e}") from e
        logger.info("Saved %d seen listing IDs", len(self._seen.seen_ids))


def dynamo_table(config: AppConfig, session: Optional[boto3.session.Session] = None) -> Any:
    """Build the DynamoDB table resource holding the seen-set."""
    session = session or boto3.session.Session(region_name=config.aws_region)
    resource = session.resource(
        "dynamodb",
        region_name=config.aws_region,
        config=Config(
            connect_timeout=config.request_timeout_seconds,
            read_timeout=config.request_timeout_seconds,
        ),
    )
    return resource.Table(config.dynamo_table_name)
