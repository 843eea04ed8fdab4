"""Local assembly of the photo album pipeline.

Wires the components the way the deployed stack does:

- image topic -> image queue (dead-letter queue after ``max_receive_count``
  failed attempts) -> cataloging
- image topic -> confirmation mailer
- dead-letter queue -> rejection mailer
- metadata topic, filtered on ``metadata_type`` -> metadata updater
"""

from typing import Any, Dict, Optional

from .core import BatchReport, BufferedQueue, PipelineConfig, QueueConsumer, Topic
from .core.envelope import (
    METADATA_TYPE_ATTRIBUTE,
    encode_metadata_message,
    encode_object_created_event,
)
from .core.factories import LoggerFactory, ServiceFactory
from .core.models import METADATA_FIELDS
from .core.protocols import (
    CatalogStoreProtocol,
    EmailClientProtocol,
    LoggerProtocol,
    S3ClientProtocol,
)
from .core.router import PublishResult, function_endpoint, queue_endpoint
from .handlers import confirmation, metadata


class PhotoAlbumPipeline:
    """Topics, queues and consumers of one pipeline instance."""

    def __init__(
        self,
        s3_client: S3ClientProtocol,
        catalog: CatalogStoreProtocol,
        image_topic: Topic,
        metadata_topic: Topic,
        image_queue: BufferedQueue,
        dead_letter_queue: BufferedQueue,
        upload_consumer: QueueConsumer,
        rejection_consumer: QueueConsumer,
        logger: LoggerProtocol,
    ):
        self.s3_client = s3_client
        self.catalog = catalog
        self.image_topic = image_topic
        self.metadata_topic = metadata_topic
        self.image_queue = image_queue
        self.dead_letter_queue = dead_letter_queue
        self._upload_consumer = upload_consumer
        self._rejection_consumer = rejection_consumer
        self._logger = logger

    def upload(
        self,
        bucket: str,
        key: str,
        body: bytes = b"",
        content_type: str = "application/octet-stream",
    ) -> PublishResult:
        """Store an object and announce it on the image topic."""
        self.s3_client.put_object(Bucket=bucket, Key=key, Body=body, ContentType=content_type)
        self._logger.info(f"Uploaded s3://{bucket}/{key}")
        return self.image_topic.publish(encode_object_created_event(bucket, key, len(body)))

    def publish_metadata(self, image_name: str, field_name: str, value: str) -> PublishResult:
        """Publish a metadata request tagged with its field name."""
        return self.metadata_topic.publish(
            encode_metadata_message(image_name, value),
            {METADATA_TYPE_ATTRIBUTE: field_name},
        )

    def process_uploads(self, max_polls: int = 100) -> BatchReport:
        return self._upload_consumer.drain(max_polls)

    def process_rejections(self, max_polls: int = 100) -> BatchReport:
        return self._rejection_consumer.drain(max_polls)

    def run_until_idle(self, max_rounds: int = 10) -> Dict[str, Any]:
        """Drain the image queue and then the dead-letter queue until both are empty."""
        uploads = BatchReport()
        rejections = BatchReport()

        for _ in range(max_rounds):
            upload_report = self.process_uploads()
            rejection_report = self.process_rejections()
            for total, report in ((uploads, upload_report), (rejections, rejection_report)):
                total.received += report.received
                total.succeeded += report.succeeded
                total.retried += report.retried
                total.discarded += report.discarded
                total.errors.extend(report.errors)
            if not self.image_queue.depth() and not self.dead_letter_queue.depth():
                break

        return {
            "cataloged": uploads.succeeded,
            "upload_attempts_failed": uploads.retried,
            "rejections_sent": rejections.succeeded,
            "dead_lettered": self.image_queue.dead_lettered_count,
        }


class PipelineFactory:
    """Factory for creating the complete local pipeline."""

    @staticmethod
    def create_pipeline(
        s3_client: S3ClientProtocol,
        catalog: CatalogStoreProtocol,
        email_client: EmailClientProtocol,
        config: Optional[PipelineConfig] = None,
        logger: Optional[LoggerProtocol] = None,
    ) -> PhotoAlbumPipeline:
        """Create a fully wired pipeline around the given collaborators."""
        config = config or PipelineConfig()
        if logger is None:
            logger = LoggerFactory.create_logger("photo-pipeline")

        services = ServiceFactory(config, logger)
        cataloger = services.create_image_catalog_service(s3_client=s3_client, catalog=catalog)
        notifier = services.create_confirmation_notifier(email_client)
        rejection_handler = services.create_rejection_handler(email_client)
        updater = services.create_metadata_updater(catalog)

        # Queues
        dead_letter_queue = BufferedQueue(
            "invalid-img-dlq", visibility_timeout=config.visibility_timeout
        )
        image_queue = BufferedQueue(
            "img-created-queue",
            max_receive_count=config.max_receive_count,
            visibility_timeout=config.visibility_timeout,
            dead_letter_queue=dead_letter_queue,
        )

        # Topics
        image_topic = Topic("NewImageTopic", logger)
        image_topic.subscribe("img-created-queue", queue_endpoint(image_queue))
        image_topic.subscribe(
            "ConfirmationMailer",
            function_endpoint(lambda event: confirmation.process_batch(event, notifier)),
        )

        metadata_topic = Topic("MetadataTopic", logger)
        metadata_topic.subscribe(
            "UpdateTable",
            function_endpoint(lambda event: metadata.process_batch(event, updater)),
            filter_policy={METADATA_TYPE_ATTRIBUTE: list(METADATA_FIELDS)},
        )

        # Consumers
        upload_consumer = QueueConsumer(
            image_queue,
            cataloger.process_message,
            logger,
            batch_size=config.batch_size,
            batching_window=config.batching_window,
        )
        rejection_consumer = QueueConsumer(
            dead_letter_queue,
            rejection_handler.process_message,
            logger,
            batch_size=config.batch_size,
            batching_window=config.batching_window,
        )

        return PhotoAlbumPipeline(
            s3_client=s3_client,
            catalog=catalog,
            image_topic=image_topic,
            metadata_topic=metadata_topic,
            image_queue=image_queue,
            dead_letter_queue=dead_letter_queue,
            upload_consumer=upload_consumer,
            rejection_consumer=rejection_consumer,
            logger=logger,
        )
