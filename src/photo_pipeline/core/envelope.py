"""Decoding of the nested transport envelopes into domain events.

Uploads arrive as an S3 event notification, serialized into the ``Message``
of an SNS notification, which is itself either the ``Sns`` member of a Lambda
record or the JSON body of an SQS message. Metadata requests arrive as an
SNS notification whose ``Message`` is ``{"id": ..., "value": ...}`` and whose
``metadata_type`` message attribute names the field to set.
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import quote_plus, unquote_plus

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .exceptions import MalformedEnvelope
from .models import MetadataEvent, ObjectLocation, ParsedEvent, Unrecognized, UploadEvent


METADATA_TYPE_ATTRIBUTE = "metadata_type"


class S3BucketRef(BaseModel):
    name: str


class S3ObjectRef(BaseModel):
    key: str
    size: Optional[int] = None


class S3Entity(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    bucket: S3BucketRef
    object_: S3ObjectRef = Field(alias="object")


class S3EventRecord(BaseModel):
    eventName: str = ""
    s3: S3Entity


class MessageAttribute(BaseModel):
    Type: str = "String"
    Value: str


class SnsNotification(BaseModel):
    """The SNS notification as delivered to Lambda or written to SQS."""

    Type: str = "Notification"
    MessageId: str = ""
    TopicArn: str = ""
    Message: str
    MessageAttributes: Dict[str, MessageAttribute] = Field(default_factory=dict)

    def attributes(self) -> Dict[str, str]:
        """Flatten message attributes to ``name -> value``."""
        return {name: attr.Value for name, attr in self.MessageAttributes.items()}


class MetadataPayload(BaseModel):
    id: str
    value: str


def decode_object_key(raw_key: str) -> str:
    """URL-decode an S3 event object key, turning ``+`` into spaces."""
    return unquote_plus(raw_key)


def _load_json(text: Any, what: str) -> Any:
    if not isinstance(text, (str, bytes)):
        raise MalformedEnvelope(f"{what} is not a serialized document")
    try:
        return json.loads(text)
    except ValueError as exc:
        raise MalformedEnvelope(f"{what} is not valid JSON: {exc}") from exc


def parse_sns_record(record: Mapping[str, Any]) -> SnsNotification:
    """Extract the SNS notification from a Lambda SNS event record."""
    if not isinstance(record, Mapping) or "Sns" not in record:
        raise MalformedEnvelope("Record has no 'Sns' member")
    try:
        return SnsNotification.model_validate(record["Sns"])
    except ValidationError as exc:
        raise MalformedEnvelope(f"Invalid SNS notification: {exc}") from exc


def parse_storage_record(record: Any) -> ParsedEvent:
    """Decode one entry of an S3 notification's ``Records`` list."""
    try:
        parsed = S3EventRecord.model_validate(record)
    except ValidationError as exc:
        return Unrecognized(reason=f"Invalid storage record: {exc}", raw=record)
    return UploadEvent(
        source=ObjectLocation(
            bucket=parsed.s3.bucket.name,
            key=decode_object_key(parsed.s3.object_.key),
        )
    )


def parse_storage_message(message: str) -> List[ParsedEvent]:
    """
    Decode the S3 event notification carried in an SNS ``Message``.

    A document without a ``Records`` list carries no domain event and yields
    an empty list. Each record is decoded on its own; one lacking
    ``s3.bucket.name`` or ``s3.object.key`` becomes ``Unrecognized`` and
    its siblings are still returned.

    Raises:
        MalformedEnvelope: if the message is not a JSON object or ``Records``
            is not a list
    """
    document = _load_json(message, "SNS message")
    if not isinstance(document, dict):
        raise MalformedEnvelope("SNS message is not a JSON object")

    records = document.get("Records")
    if records is None:
        return []
    if not isinstance(records, list):
        raise MalformedEnvelope("Storage notification Records is not a list")

    return [parse_storage_record(record) for record in records]


def parse_queue_body(body: str) -> List[ParsedEvent]:
    """Decode an SQS message body holding an SNS-wrapped S3 notification."""
    document = _load_json(body, "Queue message body")
    try:
        notification = SnsNotification.model_validate(document)
    except ValidationError as exc:
        raise MalformedEnvelope(f"Queue body is not an SNS notification: {exc}") from exc
    return parse_storage_message(notification.Message)


def _records(event: Mapping[str, Any]) -> List[Any]:
    records = event.get("Records") if isinstance(event, Mapping) else None
    return records if isinstance(records, list) else []


def parse_upload_notifications(event: Mapping[str, Any]) -> List[ParsedEvent]:
    """Decode an SNS-triggered Lambda event into upload events."""
    parsed: List[ParsedEvent] = []
    for record in _records(event):
        try:
            notification = parse_sns_record(record)
            parsed.extend(parse_storage_message(notification.Message))
        except MalformedEnvelope as exc:
            parsed.append(Unrecognized(reason=str(exc), raw=record))
    return parsed


def parse_metadata_notification(notification: SnsNotification) -> ParsedEvent:
    """Decode one metadata notification; the field name is not checked here."""
    field_name = notification.attributes().get(METADATA_TYPE_ATTRIBUTE)
    if not field_name:
        return Unrecognized(reason="Missing metadata_type attribute", raw=notification.Message)

    try:
        payload = MetadataPayload.model_validate(
            _load_json(notification.Message, "Metadata message")
        )
    except (MalformedEnvelope, ValidationError) as exc:
        return Unrecognized(reason=f"Invalid metadata payload: {exc}", raw=notification.Message)

    return MetadataEvent(image_name=payload.id, field_name=field_name, field_value=payload.value)


def parse_metadata_notifications(event: Mapping[str, Any]) -> List[ParsedEvent]:
    """Decode an SNS-triggered Lambda event into metadata events."""
    parsed: List[ParsedEvent] = []
    for record in _records(event):
        try:
            notification = parse_sns_record(record)
        except MalformedEnvelope as exc:
            parsed.append(Unrecognized(reason=str(exc), raw=record))
            continue
        parsed.append(parse_metadata_notification(notification))
    return parsed


def encode_object_created_event(bucket: str, key: str, size: int = 0) -> str:
    """Build the S3 ``ObjectCreated:Put`` notification for an uploaded object."""
    document = {
        "Records": [
            {
                "eventVersion": "2.1",
                "eventSource": "aws:s3",
                "eventTime": datetime.now(timezone.utc).isoformat(),
                "eventName": "ObjectCreated:Put",
                "s3": {
                    "s3SchemaVersion": "1.0",
                    "bucket": {"name": bucket, "arn": f"arn:aws:s3:::{bucket}"},
                    "object": {"key": quote_plus(key, safe="/"), "size": size},
                },
            }
        ]
    }
    return json.dumps(document)


def encode_metadata_message(image_name: str, value: str) -> str:
    """Build the metadata message body ``{"id": ..., "value": ...}``."""
    return json.dumps({"id": image_name, "value": value})
