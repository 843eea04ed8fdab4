# src/photo_pipeline/core/error_handling.py

import functools
import logging

from botocore.exceptions import BotoCoreError, ClientError

from .exceptions import PhotoPipelineError


def client_error_code(error: Exception) -> str:
    """Return the AWS error code carried by a botocore ClientError, or ''."""
    if isinstance(error, ClientError):
        return error.response.get("Error", {}).get("Code", "")
    return ""


def translate_client_errors(error_cls):
    """
    Decorator mapping botocore failures onto a pipeline error type.

    Domain errors raised by the wrapped function pass through untouched.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            logger = logging.getLogger(func.__module__ + '.' + func.__name__)
            try:
                return func(*args, **kwargs)
            except PhotoPipelineError:
                raise
            except (ClientError, BotoCoreError) as e:
                logger.error(f"AWS call failed in '{func.__name__}': {e}")
                raise error_cls(f"{func.__name__} failed: {e}") from e
        return wrapper
    return decorator


class BatchOperationContextManager:
    """
    Context manager for batch operations to collect and summarize errors.

    Items report their own failures through ``add_error`` so one bad item
    never aborts its siblings.
    """
    def __init__(self, operation_name="Batch Operation", logger=None):
        self.operation_name = operation_name
        self.errors = []
        self.processed = 0
        self.logger = logger or logging.getLogger(
            self.__class__.__module__ + '.' + self.__class__.__name__
        )

    def __enter__(self):
        self.logger.info(f"Starting {self.operation_name}.")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.errors:
            self.logger.warning(
                f"{self.operation_name} completed with {len(self.errors)} error(s) "
                f"out of {self.processed} item(s)."
            )
            for i, error_detail in enumerate(self.errors):
                self.logger.error(
                    f"  Error {i+1}/{len(self.errors)} for item "
                    f"'{error_detail['item']}': {error_detail['error']}"
                )
        elif exc_type:
            self.logger.error(
                f"{self.operation_name} failed due to an unhandled exception: {exc_val}"
            )
        else:
            self.logger.info(
                f"{self.operation_name} completed successfully ({self.processed} item(s))."
            )
        return False

    def record_success(self):
        self.processed += 1

    def add_error(self, error_message, item_identifier="Unknown item"):
        """
        Report an error for a specific item.

        Args:
            error_message: The error message or exception.
            item_identifier: A string identifying the item that failed (e.g. an S3 URI).
        """
        self.processed += 1
        self.errors.append({"item": item_identifier, "error": str(error_message)})
        self.logger.debug(
            f"Error added for item '{item_identifier}' in {self.operation_name}: {error_message}"
        )
