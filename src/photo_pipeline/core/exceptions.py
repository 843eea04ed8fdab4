"""Custom exceptions and error handling utilities for the photo pipeline."""

from __future__ import annotations

from functools import wraps
from typing import Any, Callable, Type, TypeVar

from .logging_config import get_logger


class PhotoPipelineError(Exception):
    """Base exception for all photo pipeline errors."""


class MalformedEnvelope(PhotoPipelineError):
    """The nested transport envelope is absent or unparsable."""


class UnsupportedFormat(PhotoPipelineError):
    """The uploaded object's extension is not an accepted image format."""

    def __init__(self, key: str, extension: str):
        self.key = key
        self.extension = extension
        super().__init__(f"Unsupported file extension: {extension or '<none>'} ({key})")


class ObjectUnavailable(PhotoPipelineError):
    """The referenced object could not be retrieved from storage."""


class CatalogWriteFailure(PhotoPipelineError):
    """The catalog store rejected or failed a write."""


class CatalogReadFailure(PhotoPipelineError):
    """The catalog store failed a read."""


class UnknownCatalogEntry(PhotoPipelineError):
    """A metadata update targeted an image that was never cataloged."""

    def __init__(self, image_name: str):
        self.image_name = image_name
        super().__init__(f"No catalog entry for image: {image_name}")


class NotificationSendFailure(PhotoPipelineError):
    """An email notification could not be sent."""


class InvalidMetadataField(PhotoPipelineError):
    """A metadata event named a field outside the allow-list."""

    def __init__(self, field_name: str):
        self.field_name = field_name
        super().__init__(f"Invalid metadata type: {field_name!r}")


class ConfigurationError(PhotoPipelineError):
    """Error raised for invalid configuration options."""


F = TypeVar("F", bound=Callable[..., Any])


def with_error_handling(
    error_cls: Type[PhotoPipelineError] = PhotoPipelineError,
) -> Callable[[F], F]:
    """Wrap a function so unexpected errors surface as ``error_cls``."""

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:  # type: ignore[override]
            logger = get_logger("photo-pipeline.errors")
            try:
                return func(*args, **kwargs)
            except PhotoPipelineError:
                logger.error("Pipeline error", exc_info=True)
                raise
            except Exception as exc:  # noqa: BLE001
                logger.error(f"Unhandled error in {func.__name__}: {exc}", exc_info=True)
                raise error_cls(str(exc)) from exc

        return wrapper  # type: ignore[return-value]

    return decorator
