"""
Loader notification publisher.

Publishes NotifyMessages to the warehouse loader's SNS topic and waits for
the publish acknowledgement before returning.
"""

from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from wow_ingestion.errors import NotificationError
from wow_ingestion.notify.contract import NotifyMessage
from wow_ingestion.utils.logging_utils import log_progress


class LoaderPublisher:
    """Publishes load-job descriptions to a fixed SNS topic."""

    def __init__(self, sns_client: Any, topic_arn: str) -> None:
        """
        Args:
            sns_client: boto3 SNS client
            topic_arn: ARN of the loader's topic
        """
        self.sns_client = sns_client
        self.topic_arn = topic_arn

    def publish(self, message: NotifyMessage) -> str:
        """
        Publish a notify message.

        Returns:
            str: The message id acknowledged by SNS

        Raises:
            NotificationError: If the publish call fails or is not acknowledged.
        """
        try:
            response = self.sns_client.publish(
                TopicArn=self.topic_arn,
                Message=message.to_json(),
            )
        except (ClientError, BotoCoreError) as e:
            raise NotificationError(
                f"failed to publish message to {self.topic_arn}: {e}"
            ) from e

        message_id = response.get("MessageId")
        if not message_id:
            raise NotificationError(
                f"publish to {self.topic_arn} returned no message id"
            )

        log_progress(
            "Loader Publisher",
            f"Published load of {message.object_reference} into "
            f"{message.dataset_id}.{message.table_id} ({message.write_mode.value})",
        )
        return message_id
