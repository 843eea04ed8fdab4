"""Transport-facing entry points, one per pipeline consumer."""

from .cataloging import process_batch as cataloging_process_batch
from .confirmation import process_batch as confirmation_process_batch
from .rejection import process_batch as rejection_process_batch
from .metadata import process_batch as metadata_process_batch

__all__ = [
    "cataloging_process_batch",
    "confirmation_process_batch",
    "rejection_process_batch",
    "metadata_process_batch",
]
