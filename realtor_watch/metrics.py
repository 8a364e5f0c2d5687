"""Metrics tracking for a watcher run."""
from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class RunMetrics:
    """Counters for a single fetch/notify/flush run."""

    found: int = 0
    new: int = 0
    skipped_duplicate: int = 0
    notified: int = 0
    notify_failed: int = 0
    flushed: bool = False

    def log_summary(self) -> None:
        """Log a summary of the run."""
        logger.info("=" * 60)
        logger.info("RUN SUMMARY")
        logger.info("=" * 60)
        logger.info("Listings found: %d", self.found)
        logger.info("New listings: %d", self.new)
        logger.info("Skipped (already seen): %d", self.skipped_duplicate)
        logger.info("Notifications sent: %d", self.notified)
        if self.notify_failed > 0:
            logger.warning("Notifications failed: %d", self.notify_failed)
        logger.info("Seen-set saved: %s", "yes" if self.flushed else "no")
        logger.info("=" * 60)

    def to_dict(self) -> dict:
        """Convert metrics to dictionary for JSON output."""
        return {
            "found": self.found,
            "new": self.new,
            "skipped_duplicate": self.skipped_duplicate,
            "notified": self.notified,
            "notify_failed": self.notify_failed,
            "flushed": self.flushed,
        }
