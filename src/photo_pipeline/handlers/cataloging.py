"""Queue consumer that validates uploads and writes catalog entries."""

from typing import Any, Dict, Mapping, Optional

from ..core import ImageCatalogService, load_config
from ..core.factories import ServiceFactory
from ..core.models import BatchReport, RetryableFailure
from ..core.services import tally


def process_batch(event: Mapping[str, Any], cataloger: ImageCatalogService) -> BatchReport:
    """
    Handle an SQS batch of SNS-wrapped upload notifications.

    Every record is processed before the first retryable failure is raised,
    which makes the transport redeliver the batch. Catalog writes are
    idempotent, so records that already succeeded are safe to see again.

    Args:
        event: SQS Lambda event with ``Records[].body``
        cataloger: Service doing the validation and catalog write

    Returns:
        A BatchReport when nothing needs redelivery.

    Raises:
        PhotoPipelineError: the error of the first retryable failure
    """
    report = BatchReport()
    first_failure: Optional[RetryableFailure] = None

    for record in event.get("Records", []):
        outcome = cataloger.process_message(record.get("body", ""))
        tally(report, outcome)
        if isinstance(outcome, RetryableFailure) and first_failure is None:
            first_failure = outcome

    if first_failure is not None:
        raise first_failure.error
    return report


def handler(event: Dict[str, Any], context: Any = None) -> Dict[str, Any]:
    """Lambda entry point; collaborators are built per invocation from the environment."""
    factory = ServiceFactory(load_config())
    report = process_batch(event, factory.create_image_catalog_service())
    return report.model_dump()
