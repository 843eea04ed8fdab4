"""Fake implementations for testing purposes."""

import io
import json
import threading
import time
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field

from ..core.envelope import encode_metadata_message, encode_object_created_event
from ..core.exceptions import UnknownCatalogEntry
from ..core.models import CatalogEntry


@dataclass
class S3Object:
    """Fake S3 object for testing."""

    key: str
    body: bytes
    content_type: str = "image/jpeg"
    size: int = 0

    def __post_init__(self):
        if self.size == 0:
            self.size = len(self.body)


@dataclass
class S3Bucket:
    """Fake S3 bucket for testing."""

    name: str
    objects: Dict[str, S3Object] = field(default_factory=dict)

    def add_object(
        self, key: str, body: bytes, content_type: str = "image/jpeg"
    ) -> None:
        """Add object to bucket."""
        self.objects[key] = S3Object(key=key, body=body, content_type=content_type)

    def get_object(self, key: str) -> Optional[S3Object]:
        """Get object from bucket."""
        return self.objects.get(key)


class FakeS3Client:
    """Fake S3 client for testing."""

    def __init__(self):
        self.buckets: Dict[str, S3Bucket] = {}
        self.operation_count = 0
        self.should_fail = False
        self.failure_message = "Simulated S3 failure"

    def create_bucket(self, name: str) -> S3Bucket:
        """Create a new bucket."""
        bucket = S3Bucket(name=name)
        self.buckets[name] = bucket
        return bucket

    def get_bucket(self, name: str) -> Optional[S3Bucket]:
        """Get bucket by name."""
        return self.buckets.get(name)

    def set_failure_mode(
        self, should_fail: bool, message: str = "Simulated failure"
    ) -> None:
        """Configure failure mode for testing error handling."""
        self.should_fail = should_fail
        self.failure_message = message

    def get_object(self, Bucket: str, Key: str) -> Dict[str, Any]:
        """Get object from S3."""
        self.operation_count += 1

        if self.should_fail:
            raise Exception(self.failure_message)

        bucket = self.buckets.get(Bucket)
        if not bucket:
            raise Exception(f"Bucket {Bucket} not found")

        obj = bucket.get_object(Key)
        if not obj:
            raise Exception(f"Object {Key} not found in bucket {Bucket}")

        return {
            "Body": io.BytesIO(obj.body),
            "ContentType": obj.content_type,
            "ContentLength": obj.size,
        }

    def put_object(
        self, Bucket: str, Key: str, Body: bytes, ContentType: str
    ) -> Dict[str, Any]:
        """Put object to S3."""
        self.operation_count += 1

        if self.should_fail:
            raise Exception(self.failure_message)

        bucket = self.buckets.get(Bucket)
        if not bucket:
            raise Exception(f"Bucket {Bucket} not found")

        bucket.add_object(Key, Body, ContentType)

        return {
            "ETag": f'"fake-etag-{Key}"',
            "ResponseMetadata": {"HTTPStatusCode": 200},
        }


class FakeCatalogStore:
    """In-memory catalog store with the same conditional semantics as DynamoDB."""

    def __init__(self):
        self.items: Dict[str, Dict[str, str]] = {}
        self.write_count = 0
        self.should_fail = False
        self.failure_message = "Simulated catalog failure"
        self._lock = threading.Lock()

    def set_failure_mode(
        self, should_fail: bool, message: str = "Simulated catalog failure"
    ) -> None:
        self.should_fail = should_fail
        self.failure_message = message

    def insert_if_absent(self, image_name: str) -> bool:
        with self._lock:
            self.write_count += 1
            if self.should_fail:
                raise Exception(self.failure_message)
            if image_name in self.items:
                return False
            self.items[image_name] = {"imageName": image_name}
            return True

    def set_field(self, image_name: str, field_name: str, value: str) -> None:
        with self._lock:
            self.write_count += 1
            if self.should_fail:
                raise Exception(self.failure_message)
            if image_name not in self.items:
                raise UnknownCatalogEntry(image_name)
            self.items[image_name][field_name] = value

    def get(self, image_name: str) -> Optional[CatalogEntry]:
        with self._lock:
            item = self.items.get(image_name)
            return CatalogEntry(**item) if item else None

    def __len__(self) -> int:
        return len(self.items)


class FakeSESClient:
    """Fake SES client recording every email it is asked to send."""

    def __init__(self):
        self.sent: List[Dict[str, Any]] = []
        self.fail_for: List[str] = []
        self.should_fail = False
        self._lock = threading.Lock()

    def set_failure_mode(self, should_fail: bool) -> None:
        self.should_fail = should_fail

    def send_email(
        self, Source: str, Destination: Dict[str, List[str]], Message: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Record the email, or fail if configured to."""
        body = Message["Body"]["Html"]["Data"]
        if self.should_fail or any(marker in body for marker in self.fail_for):
            raise Exception("Simulated SES failure")

        with self._lock:
            self.sent.append(
                {
                    "source": Source,
                    "to": list(Destination.get("ToAddresses", [])),
                    "subject": Message["Subject"]["Data"],
                    "body": body,
                }
            )
            return {"MessageId": f"fake-{len(self.sent)}"}

    def subjects(self) -> List[str]:
        return [email["subject"] for email in self.sent]


class FakeSNSClient:
    """Fake SNS client recording published messages."""

    def __init__(self):
        self.published: List[Dict[str, Any]] = []

    def publish(
        self,
        TopicArn: str,
        Message: str,
        MessageAttributes: Dict[str, Dict[str, str]],
    ) -> Dict[str, Any]:
        self.published.append(
            {"TopicArn": TopicArn, "Message": Message, "MessageAttributes": MessageAttributes}
        )
        return {"MessageId": f"fake-{len(self.published)}"}


class FakeLogger:
    """Fake logger for testing with support for LogContext."""

    def __init__(self, name: str = "test_logger"):
        self.name = name
        self.logs: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def _log(
        self, level: str, message: str, context: Any = None, **kwargs: Any
    ) -> None:
        """Internal logging method with context support."""
        log_entry = {
            "level": level,
            "message": message,
            "timestamp": time.time(),
            **kwargs,
        }

        if context is not None:
            if hasattr(context, "correlation_id"):
                log_entry["correlation_id"] = context.correlation_id
            if hasattr(context, "operation"):
                log_entry["operation"] = context.operation
            if hasattr(context, "metadata"):
                log_entry.update(context.metadata)

        with self._lock:
            self.logs.append(log_entry)

    def debug(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log debug message."""
        self._log("DEBUG", message, context, **kwargs)

    def info(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log info message."""
        self._log("INFO", message, context, **kwargs)

    def warning(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log warning message."""
        self._log("WARNING", message, context, **kwargs)

    def error(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log error message."""
        self._log("ERROR", message, context, **kwargs)

    def get_logs(self, level: Optional[str] = None) -> List[Dict[str, Any]]:
        """Get logged messages, optionally filtered by level."""
        if level:
            return [log for log in self.logs if log["level"] == level]
        return self.logs.copy()

    def clear_logs(self) -> None:
        """Clear all logged messages."""
        self.logs.clear()


def make_sns_notification(
    message: str, attributes: Optional[Dict[str, str]] = None, message_id: str = "msg-1"
) -> Dict[str, Any]:
    """SNS notification document as delivered to Lambda or written to SQS."""
    return {
        "Type": "Notification",
        "MessageId": message_id,
        "TopicArn": "arn:aws:sns:eu-west-1:123456789012:topic",
        "Message": message,
        "MessageAttributes": {
            name: {"Type": "String", "Value": value}
            for name, value in (attributes or {}).items()
        },
    }


def make_upload_sns_event(bucket: str, *keys: str) -> Dict[str, Any]:
    """SNS Lambda event with one record per uploaded key."""
    return {
        "Records": [
            {
                "EventSource": "aws:sns",
                "Sns": make_sns_notification(encode_object_created_event(bucket, key), message_id=f"msg-{i}"),
            }
            for i, key in enumerate(keys)
        ]
    }


def make_upload_queue_body(bucket: str, key: str) -> str:
    """SQS body for an upload: SNS notification wrapping the S3 event."""
    return json.dumps(make_sns_notification(encode_object_created_event(bucket, key)))


def make_upload_sqs_event(bucket: str, *keys: str) -> Dict[str, Any]:
    """SQS Lambda event with one record per uploaded key."""
    return {
        "Records": [
            {
                "messageId": f"sqs-{i}",
                "receiptHandle": f"rh-{i}",
                "body": make_upload_queue_body(bucket, key),
                "attributes": {"ApproximateReceiveCount": "1"},
                "eventSource": "aws:sqs",
            }
            for i, key in enumerate(keys)
        ]
    }


def make_metadata_sns_event(image_name: str, field_name: str, value: str) -> Dict[str, Any]:
    """SNS Lambda event carrying one metadata request."""
    return {
        "Records": [
            {
                "EventSource": "aws:sns",
                "Sns": make_sns_notification(
                    encode_metadata_message(image_name, value),
                    {"metadata_type": field_name},
                ),
            }
        ]
    }
