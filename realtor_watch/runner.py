"""Single fetch -> notify -> flush cycle."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Sequence

from realtor_watch.errors import DeadlineExceeded, FetchError, NotifyError, StoreError, WatchError
from realtor_watch.fetcher.base import ListingSource
from realtor_watch.fetcher.realtor import Listing
from realtor_watch.metrics import RunMetrics
from realtor_watch.notifiers.base import Notifier
from realtor_watch.state import SeenStore

logger = logging.getLogger(__name__)


class RunState(Enum):
    START = "start"
    FETCH = "fetch"
    NOTIFY = "notify"
    FLUSH = "flush"
    DONE = "done"
    FAILED = "failed"


@dataclass
class RunResult:
    """Outcome of one run."""

    state: RunState
    metrics: RunMetrics
    errors: List[WatchError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.state is RunState.DONE and not self.errors

    @property
    def error(self) -> Optional[WatchError]:
        """The terminal error; a failed flush always comes last."""
        return self.errors[-1] if self.errors else None


class Deadline:
    """Point in time after which no new step may start."""

    def __init__(self, expires_at: Optional[float] = None):
        self.expires_at = expires_at

    @classmethod
    def none(cls) -> "Deadline":
        return cls(None)

    @classmethod
    def in_seconds(cls, seconds: float) -> "Deadline":
        return cls(time.monotonic() + seconds)

    @classmethod
    def from_lambda_context(cls, context: Any, margin_seconds: float = 0.0) -> "Deadline":
        """Derive the deadline from a Lambda context, keeping a safety margin."""
        if context is None or not hasattr(context, "get_remaining_time_in_millis"):
            return cls.none()
        remaining = context.get_remaining_time_in_millis() / 1000.0
        return cls.in_seconds(remaining - margin_seconds)

    def remaining(self) -> Optional[float]:
        if self.expires_at is None:
            return None
        return self.expires_at - time.monotonic()

    def check(self, step: str) -> None:
        remaining = self.remaining()
        if remaining is not None and remaining <= 0:
            raise DeadlineExceeded(f"Deadline exceeded before {step}")


class RunCoordinator:
    """Fetch listings, alert on unseen ones and persist the seen-set.

    Only one run may be active against the same seen-set record at a time;
    concurrent runs overwrite each other's additions on flush.
    """

    def __init__(
        self,
        source: ListingSource,
        store: SeenStore,
        notifier: Notifier,
        mark_seen_on_notify_failure: bool = True,
        dry_run: bool = False,
        deadline: Optional[Deadline] = None,
    ):
        self.source = source
        self.store = store
        self.notifier = notifier
        self.mark_seen_on_notify_failure = mark_seen_on_notify_failure
        self.dry_run = dry_run
        self.deadline = deadline or Deadline.none()

    def run(self) -> RunResult:
        result = RunResult(state=RunState.START, metrics=RunMetrics())

        self._enter(result, RunState.FETCH)
        try:
            self.deadline.check("fetch")
            listings = self.source.fetch()
        except (FetchError, DeadlineExceeded) as e:
            return self._fail(result, e)
        result.metrics.found = len(listings)

        self._enter(result, RunState.NOTIFY)
        try:
            self._process(listings, result.metrics)
        except NotifyError as e:
            # Alerts already sent must stay recorded, so flush still runs
            logger.error("Stopping after failed alert: %s", e)
            result.errors.append(e)
        except (StoreError, DeadlineExceeded) as e:
            return self._fail(result, e)

        if self.dry_run:
            logger.info("DRY RUN MODE - seen-set not saved")
        else:
            self._enter(result, RunState.FLUSH)
            try:
                self.store.flush()
                result.metrics.flushed = True
            except StoreError as e:
                logger.error("Failed to save seen-set: %s", e)
                result.errors.append(e)

        if result.errors:
            result.state = RunState.FAILED
        else:
            self._enter(result, RunState.DONE)
        return result

    def _process(self, listings: Sequence[Listing], metrics: RunMetrics) -> None:
        for listing in listings:
            self.deadline.check(f"listing {listing.id}")

            if self.store.is_seen(listing.id):
                metrics.skipped_duplicate += 1
                continue

            metrics.new += 1
            try:
                self._notify(listing)
            except NotifyError:
                metrics.notify_failed += 1
                if self.mark_seen_on_notify_failure:
                    logger.warning(
                        "Marking listing %s as seen although its alert failed; it will not be alerted again",
                        listing.id,
                    )
                    self.store.mark_seen(listing.id)
                raise
            metrics.notified += 1
            self.store.mark_seen(listing.id)

    def _notify(self, listing: Listing) -> None:
        if self.dry_run:
            logger.info("DRY RUN: would alert on listing %s: %s", listing.id, listing.url)
            return
        self.notifier.send(listing)

    def _enter(self, result: RunResult, state: RunState) -> None:
        logger.debug("Run state %s -> %s", result.state.value, state.value)
        result.state = state

    def _fail(self, result: RunResult, error: WatchError) -> RunResult:
        logger.error("Run failed during %s: %s", result.state.value, error)
        result.errors.append(error)
        result.state = RunState.FAILED
        return result
