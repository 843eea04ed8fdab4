"""Service implementations for the photo pipeline consumers."""

import html
import time
from typing import Iterable, Sequence

from .envelope import parse_queue_body
from .error_handling import BatchOperationContextManager
from .exceptions import (
    CatalogWriteFailure,
    InvalidMetadataField,
    MalformedEnvelope,
    NotificationSendFailure,
    ObjectUnavailable,
    UnknownCatalogEntry,
    UnsupportedFormat,
    with_error_handling,
)
from .models import (
    METADATA_FIELDS,
    SUPPORTED_EXTENSIONS,
    BatchReport,
    MetadataEvent,
    Ok,
    Outcome,
    ParsedEvent,
    RetryableFailure,
    TerminalFailure,
    Unrecognized,
    UploadEvent,
)
from .observability import LogContext
from .protocols import (
    CatalogStoreProtocol,
    EmailClientProtocol,
    LoggerProtocol,
    S3ClientProtocol,
)


def extension_of(key: str) -> str:
    """Lower-cased extension of an object key including the dot, or ''."""
    if "." not in key:
        return ""
    return "." + key.rsplit(".", 1)[1].lower()


def tally(report: BatchReport, outcome: Outcome) -> None:
    """Count one outcome into a batch report."""
    report.received += 1
    if isinstance(outcome, RetryableFailure):
        report.retried += 1
        report.errors.append(str(outcome.error))
    elif isinstance(outcome, TerminalFailure):
        report.discarded += 1
        report.errors.append(str(outcome.error))
    else:
        report.succeeded += 1


class ImageCatalogService:
    """Validates uploaded objects and records accepted ones in the catalog."""

    def __init__(
        self,
        s3_client: S3ClientProtocol,
        catalog: CatalogStoreProtocol,
        logger: LoggerProtocol,
        supported_extensions: Sequence[str] = SUPPORTED_EXTENSIONS,
    ):
        self._s3_client = s3_client
        self._catalog = catalog
        self._logger = logger
        self._supported_extensions = tuple(ext.lower() for ext in supported_extensions)

    def catalog_upload(self, event: UploadEvent) -> Outcome:
        """
        Validate one upload and write its catalog entry.

        Every failure is retryable: the queue redelivers the message until its
        attempts are exhausted and then dead-letters it.
        """
        location = event.source
        log_context = LogContext(
            correlation_id=f"img_{location.key}_{int(time.time() * 1000)}",
            operation="catalog_upload",
            component="image_catalog_service",
        ).with_metadata(uri=location.uri)

        extension = extension_of(location.key)
        if extension not in self._supported_extensions:
            error = UnsupportedFormat(location.key, extension)
            self._logger.error(str(error), log_context)
            return RetryableFailure(error=error)

        # The object must be retrievable before it is cataloged
        try:
            self._fetch_object(location.bucket, location.key)
        except ObjectUnavailable as e:
            self._logger.error("Error retrieving object", log_context.with_metadata(error=str(e)))
            return RetryableFailure(error=e)

        self._logger.debug("Successfully retrieved object", log_context.with_operation("fetch_object"))

        try:
            created = self._insert_entry(location.key)
        except CatalogWriteFailure as e:
            self._logger.error("Error adding item to catalog", log_context.with_metadata(error=str(e)))
            return RetryableFailure(error=e)

        if created:
            self._logger.info("Added image to catalog", log_context.with_operation("insert_entry"))
        else:
            self._logger.info("Image already cataloged", log_context.with_operation("insert_entry"))
        return Ok(detail=location.key)

    def process_message(self, body: str) -> Outcome:
        """Handle one queue message; the first non-Ok outcome wins."""
        try:
            events = parse_queue_body(body)
        except MalformedEnvelope as e:
            self._logger.error(f"Skipping malformed queue message: {e}")
            return TerminalFailure(error=e)

        if not events:
            self._logger.debug("Queue message carried no upload records")

        for event in events:
            if isinstance(event, Unrecognized):
                self._logger.error(f"Skipping storage record: {event.reason}")
                continue
            outcome = self.catalog_upload(event)
            if not isinstance(outcome, Ok):
                return outcome
        return Ok()

    @with_error_handling(CatalogWriteFailure)
    def _insert_entry(self, image_name: str) -> bool:
        return self._catalog.insert_if_absent(image_name)

    @with_error_handling(ObjectUnavailable)
    def _fetch_object(self, bucket: str, key: str) -> None:
        response = self._s3_client.get_object(Bucket=bucket, Key=key)
        body = response.get("Body")
        if body is not None and hasattr(body, "close"):
            body.close()


def render_html(heading: str, name: str, email: str, message: str) -> str:
    """Minimal HTML body for a notification email."""
    return (
        "<html>\n"
        "  <body>\n"
        f"    <h2>{html.escape(heading)}</h2>\n"
        "    <ul>\n"
        f"      <li><b>{html.escape(name)}</b></li>\n"
        f"      <li><b>{html.escape(email)}</b></li>\n"
        "    </ul>\n"
        f"    <p>{html.escape(message)}</p>\n"
        "  </body>\n"
        "</html>\n"
    )


class Mailer:
    """Sends notification emails through an SES-compatible client."""

    def __init__(
        self,
        email_client: EmailClientProtocol,
        sender: str,
        recipient: str,
        sender_name: str = "The Photo Album",
    ):
        self._email_client = email_client
        self._sender = sender
        self._recipient = recipient
        self._sender_name = sender_name

    @with_error_handling(NotificationSendFailure)
    def send(self, subject: str, heading: str, message: str) -> None:
        """Send one email; any client error surfaces as NotificationSendFailure."""
        self._email_client.send_email(
            Source=self._sender,
            Destination={"ToAddresses": [self._recipient]},
            Message={
                "Subject": {"Charset": "UTF-8", "Data": subject},
                "Body": {
                    "Html": {
                        "Charset": "UTF-8",
                        "Data": render_html(heading, self._sender_name, self._sender, message),
                    }
                },
            },
        )


class ConfirmationNotifier:
    """Tells the uploader an image was received."""

    SUBJECT = "New Image Upload"
    HEADING = "Image Upload Confirmation"

    def __init__(self, mailer: Mailer, logger: LoggerProtocol):
        self._mailer = mailer
        self._logger = logger

    def notify(self, event: UploadEvent) -> Outcome:
        uri = event.source.uri
        try:
            self._mailer.send(
                self.SUBJECT, self.HEADING, f"We received your Image. Its URL is {uri}"
            )
        except NotificationSendFailure as e:
            return TerminalFailure(error=e)
        self._logger.info(f"Email sent for image: {uri}")
        return Ok(detail=uri)

    def notify_all(self, events: Iterable[ParsedEvent]) -> BatchReport:
        """Send one confirmation per upload; failures are isolated per event."""
        report = BatchReport()
        with BatchOperationContextManager("Confirmation emails", self._logger) as batch:
            for event in events:
                if not isinstance(event, UploadEvent):
                    reason = event.reason if isinstance(event, Unrecognized) else type(event).__name__
                    self._logger.warning(f"Skipping record without upload event: {reason}")
                    continue
                outcome = self.notify(event)
                tally(report, outcome)
                if isinstance(outcome, Ok):
                    batch.record_success()
                else:
                    batch.add_error(outcome.error, event.source.uri)
        return report


class RejectionHandler:
    """Tells the uploader an image was dead-lettered and not cataloged."""

    SUBJECT = "FAILED: Image Upload"
    HEADING = "Image Upload Failed"

    def __init__(self, mailer: Mailer, logger: LoggerProtocol):
        self._mailer = mailer
        self._logger = logger

    def reject(self, event: UploadEvent) -> Outcome:
        uri = event.source.uri
        try:
            self._mailer.send(
                self.SUBJECT,
                self.HEADING,
                f"We did not process your image due to unsupported format. Its URL was {uri}",
            )
        except NotificationSendFailure as e:
            return TerminalFailure(error=e)
        self._logger.info(f"Rejection email sent for image: {uri}")
        return Ok(detail=uri)

    def process_message(self, body: str) -> Outcome:
        """Handle one dead-lettered message. Never asks for redelivery."""
        report = self.handle_dead_letters([body])
        if report.discarded:
            return TerminalFailure(error=NotificationSendFailure("; ".join(report.errors)))
        return Ok()

    def handle_dead_letters(self, bodies: Iterable[str]) -> BatchReport:
        """Send one rejection per upload found in the dead-lettered bodies."""
        report = BatchReport()
        with BatchOperationContextManager("Rejection emails", self._logger) as batch:
            for body in bodies:
                try:
                    events = parse_queue_body(body)
                except MalformedEnvelope as e:
                    self._logger.error(f"Skipping malformed dead-letter message: {e}")
                    batch.add_error(e, "dead-letter message")
                    continue
                for event in events:
                    if isinstance(event, Unrecognized):
                        self._logger.error(f"Skipping dead-letter record: {event.reason}")
                        batch.add_error(MalformedEnvelope(event.reason), "dead-letter record")
                        continue
                    outcome = self.reject(event)
                    tally(report, outcome)
                    if isinstance(outcome, Ok):
                        batch.record_success()
                    else:
                        batch.add_error(outcome.error, event.source.uri)
        return report


class MetadataUpdater:
    """Applies single-field metadata updates to existing catalog entries."""

    def __init__(
        self,
        catalog: CatalogStoreProtocol,
        logger: LoggerProtocol,
        allowed_fields: Sequence[str] = METADATA_FIELDS,
    ):
        self._catalog = catalog
        self._logger = logger
        self._allowed_fields = tuple(allowed_fields)

    def apply(self, event: MetadataEvent) -> Outcome:
        """
        Set ``event.field_name`` on the entry named by ``event.image_name``.

        Invalid field names and unknown images are discarded, not retried.
        """
        if event.field_name not in self._allowed_fields:
            error = InvalidMetadataField(event.field_name)
            self._logger.warning(f"Invalid metadata type, discarding: {error}")
            return TerminalFailure(error=error)

        try:
            self._set_field(event.image_name, event.field_name, event.field_value)
        except UnknownCatalogEntry as e:
            self._logger.warning(f"Discarding metadata for uncataloged image: {e}")
            return TerminalFailure(error=e)
        except CatalogWriteFailure as e:
            self._logger.error(f"Error updating metadata: {e}")
            return RetryableFailure(error=e)

        self._logger.info(
            f"Successfully updated metadata for {event.image_name}",
            field=event.field_name,
        )
        return Ok(detail=event.image_name)

    def apply_all(self, events: Iterable[ParsedEvent]) -> BatchReport:
        report = BatchReport()
        for event in events:
            if not isinstance(event, MetadataEvent):
                reason = event.reason if isinstance(event, Unrecognized) else type(event).__name__
                self._logger.warning(f"Skipping record without metadata event: {reason}")
                continue
            tally(report, self.apply(event))
        return report

    @with_error_handling(CatalogWriteFailure)
    def _set_field(self, image_name: str, field_name: str, value: str) -> None:
        self._catalog.set_field(image_name, field_name, value)
