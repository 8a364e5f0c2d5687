"""AWS Lambda entry point, invoked on a schedule."""
from __future__ import annotations

import logging
from typing import Any, Optional

import boto3

from realtor_watch.config import AppConfig, load_config
from realtor_watch.fetcher.realtor import RealtorListingSource
from realtor_watch.notifiers.sns import SnsNotifier
from realtor_watch.runner import Deadline, RunCoordinator
from realtor_watch.state import SeenStore, dynamo_table

logger = logging.getLogger(__name__)


def build_coordinator(
    config: AppConfig,
    dry_run: bool = False,
    deadline: Optional[Deadline] = None,
    session: Optional[boto3.session.Session] = None,
) -> RunCoordinator:
    """Wire the listing source, seen-set store and notifier for one run."""
    session = session or boto3.session.Session(region_name=config.aws_region)
    return RunCoordinator(
        source=RealtorListingSource(config.search, timeout=config.request_timeout_seconds),
        store=SeenStore(dynamo_table(config, session)),
        notifier=SnsNotifier.from_config(config, session),
        mark_seen_on_notify_failure=config.mark_seen_on_notify_failure,
        dry_run=dry_run,
        deadline=deadline,
    )


def handle(event: Any, context: Any) -> dict:
    """Run one watcher cycle.

    Raises the run's terminal error so the invocation is reported as failed.
    """
    # Lambda leaves the root logger at WARNING and installs its own handler
    logging.getLogger("realtor_watch").setLevel(logging.INFO)

    config = load_config()
    deadline = Deadline.from_lambda_context(context, config.deadline_margin_seconds)

    result = build_coordinator(config, deadline=deadline).run()
    result.metrics.log_summary()

    if not result.ok:
        raise result.error
    return result.metrics.to_dict()
