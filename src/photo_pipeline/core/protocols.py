"""Protocol definitions for dependency injection and testability."""

from typing import Any, Dict, List, Optional, Protocol

from .models import CatalogEntry


class S3ClientProtocol(Protocol):
    """Protocol for S3 client operations."""

    def get_object(self, Bucket: str, Key: str) -> Dict[str, Any]:
        """Get object from S3."""
        ...

    def put_object(
        self, Bucket: str, Key: str, Body: bytes, ContentType: str
    ) -> Dict[str, Any]:
        """Put object to S3."""
        ...


class EmailClientProtocol(Protocol):
    """Protocol for the subset of the SES client the notifiers use."""

    def send_email(
        self, Source: str, Destination: Dict[str, List[str]], Message: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Send a single email."""
        ...


class SNSClientProtocol(Protocol):
    """Protocol for publishing to an SNS topic."""

    def publish(
        self,
        TopicArn: str,
        Message: str,
        MessageAttributes: Dict[str, Dict[str, str]],
    ) -> Dict[str, Any]:
        """Publish a message."""
        ...


class CatalogStoreProtocol(Protocol):
    """Protocol for the image catalog persistence layer."""

    def insert_if_absent(self, image_name: str) -> bool:
        """Create the entry for ``image_name``; return False if it already existed."""
        ...

    def set_field(self, image_name: str, field_name: str, value: str) -> None:
        """Set one optional field on an existing entry."""
        ...

    def get(self, image_name: str) -> Optional[CatalogEntry]:
        """Fetch an entry by image name."""
        ...


class LoggerProtocol(Protocol):
    """Protocol for logging operations."""

    def debug(self, message: str, *args: Any, **kwargs: Any) -> None:
        """Log debug message."""
        ...

    def info(self, message: str, *args: Any, **kwargs: Any) -> None:
        """Log info message."""
        ...

    def warning(self, message: str, *args: Any, **kwargs: Any) -> None:
        """Log warning message."""
        ...

    def error(self, message: str, *args: Any, **kwargs: Any) -> None:
        """Log error message."""
        ...
