"""Core components shared by the photo pipeline consumers."""

from .logging_config import get_logger, setup_logger
from .exceptions import (
    PhotoPipelineError,
    MalformedEnvelope,
    UnsupportedFormat,
    ObjectUnavailable,
    CatalogWriteFailure,
    CatalogReadFailure,
    UnknownCatalogEntry,
    NotificationSendFailure,
    InvalidMetadataField,
    ConfigurationError,
    with_error_handling,
)
from .models import (
    METADATA_FIELDS,
    SUPPORTED_EXTENSIONS,
    BatchReport,
    CatalogEntry,
    MetadataEvent,
    ObjectLocation,
    Ok,
    Outcome,
    RetryableFailure,
    TerminalFailure,
    Unrecognized,
    UploadEvent,
)
from .config import PipelineConfig, load_config
from .router import Topic, matches
from .queue import BufferedQueue, MessageState, QueueConsumer
from .services import (
    ConfirmationNotifier,
    ImageCatalogService,
    Mailer,
    MetadataUpdater,
    RejectionHandler,
)

__all__ = [
    "setup_logger",
    "get_logger",
    "PhotoPipelineError",
    "MalformedEnvelope",
    "UnsupportedFormat",
    "ObjectUnavailable",
    "CatalogWriteFailure",
    "CatalogReadFailure",
    "UnknownCatalogEntry",
    "NotificationSendFailure",
    "InvalidMetadataField",
    "ConfigurationError",
    "with_error_handling",
    "METADATA_FIELDS",
    "SUPPORTED_EXTENSIONS",
    "BatchReport",
    "CatalogEntry",
    "MetadataEvent",
    "ObjectLocation",
    "Ok",
    "Outcome",
    "RetryableFailure",
    "TerminalFailure",
    "Unrecognized",
    "UploadEvent",
    "PipelineConfig",
    "load_config",
    "Topic",
    "matches",
    "BufferedQueue",
    "MessageState",
    "QueueConsumer",
    "ConfirmationNotifier",
    "ImageCatalogService",
    "Mailer",
    "MetadataUpdater",
    "RejectionHandler",
]
