from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

from dotenv import load_dotenv

from realtor_watch.config import AppConfig, load_config
from realtor_watch.errors import ConfigError
from realtor_watch.handler import build_coordinator
from realtor_watch.runner import RunResult

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def run_bot(config: AppConfig, dry_run: bool = False) -> RunResult:
    """Run one fetch/notify/flush cycle with the given configuration."""
    logger.info("=" * 60)
    logger.info("REALTOR WATCH STARTING")
    logger.info("=" * 60)
    logger.info("Seen-set table: %s (%s)", config.dynamo_table_name, config.aws_region)
    logger.info("Alert topic: %s", config.sns_topic_arn)
    logger.info(
        "Search: price %s-%s %s, beds %s, baths %s",
        config.search.price_min,
        config.search.price_max,
        config.search.currency,
        config.search.bed_range,
        config.search.bath_range,
    )
    if not config.mark_seen_on_notify_failure:
        logger.info("Listings whose alert fails will be retried on the next run")
    logger.info("=" * 60)

    result = build_coordinator(config, dry_run=dry_run).run()
    result.metrics.log_summary()
    return result


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point.

    Returns 0 on success, 1 on error.
    """
    parser = argparse.ArgumentParser(
        description="Realtor Watch - Alert on new Realtor.ca listings",
    )
    parser.add_argument(
        "-c",
        "--config",
        default=None,
        help="Path to an optional YAML configuration file",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose/debug logging",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Fetch and compare listings but don't send alerts or save the seen-set",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print run metrics as JSON to stdout",
    )

    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    load_dotenv()

    try:
        config = load_config(args.config)
    except ConfigError as e:
        logger.error("Failed to load configuration: %s", e)
        return 1

    if args.dry_run:
        logger.info("DRY RUN MODE - No alerts will be sent")

    try:
        result = run_bot(config, dry_run=args.dry_run)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as e:
        logger.exception("Unexpected error: %s", e)
        return 1

    if args.json:
        print(json.dumps({"state": result.state.value, **result.metrics.to_dict()}, indent=2))

    if not result.ok:
        logger.error("Run failed: %s", result.error)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
