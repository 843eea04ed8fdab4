"""Testing utilities and fakes for the photo pipeline."""

from .fakes import (
    FakeS3Client,
    FakeCatalogStore,
    FakeSESClient,
    FakeSNSClient,
    FakeLogger,
    S3Object,
    S3Bucket,
    make_sns_notification,
    make_upload_sns_event,
    make_upload_queue_body,
    make_upload_sqs_event,
    make_metadata_sns_event,
)

__all__ = [
    "FakeS3Client",
    "FakeCatalogStore",
    "FakeSESClient",
    "FakeSNSClient",
    "FakeLogger",
    "S3Object",
    "S3Bucket",
    "make_sns_notification",
    "make_upload_sns_event",
    "make_upload_queue_body",
    "make_upload_sqs_event",
    "make_metadata_sns_event",
]
