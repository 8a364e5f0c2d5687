import logging
from typing import Any, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from realtor_watch.config import AppConfig
from realtor_watch.errors import NotifyError
from realtor_watch.fetcher.realtor import Listing

logger = logging.getLogger(__name__)

SUBJECT = "New listing on Realtor.ca"


def format_subject(listing: Listing) -> str:
    return SUBJECT


def format_message(listing: Listing) -> str:
    return listing.url


class SnsNotifier:
    """Publish one alert per listing to an SNS topic."""

    def __init__(self, client: Any, topic_arn: str):
        self.client = client
        self.topic_arn = topic_arn

    @classmethod
    def from_config(cls, config: AppConfig, session: Optional[boto3.session.Session] = None) -> "SnsNotifier":
        session = session or boto3.session.Session(region_name=config.aws_region)
        client = session.client(
            "sns",
            region_name=config.aws_region,
            config=Config(
                connect_timeout=config.request_timeout_seconds,
                read_timeout=config.request_timeout_seconds,
            ),
        )
        return cls(client, config.sns_topic_arn)

    def send(self, listing: Listing) -> None:
        """Publish the alert for a listing.

        Raises NotifyError if SNS rejects the message. No retry is attempted.
        """
        try:
            response = self.client.publish(
                TopicArn=self.topic_arn,
                Subject=format_subject(listing),
                Message=format_message(listing),
            )
        except (ClientError, BotoCoreError) as exc:
            raise NotifyError(f"Failed to publish alert for listing {listing.id}: {exc}", listing) from exc
        logger.info("Sent alert for listing %s (message %s)", listing.id, response.get("MessageId"))
