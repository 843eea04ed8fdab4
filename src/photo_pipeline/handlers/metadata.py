"""Topic subscriber applying metadata updates to catalog entries."""

from typing import Any, Dict, Mapping

from ..core import MetadataUpdater, load_config
from ..core.envelope import parse_metadata_notifications
from ..core.exceptions import CatalogWriteFailure
from ..core.factories import ServiceFactory
from ..core.models import BatchReport


def process_batch(event: Mapping[str, Any], updater: MetadataUpdater) -> BatchReport:
    """
    Apply the metadata events of an SNS Lambda event.

    Invalid fields and unknown images are discarded. A failed catalog write
    is raised so the invocation is retried.
    """
    report = updater.apply_all(parse_metadata_notifications(event))
    if report.retried:
        raise CatalogWriteFailure("; ".join(report.errors))
    return report


def handler(event: Dict[str, Any], context: Any = None) -> Dict[str, Any]:
    factory = ServiceFactory(load_config())
    return process_batch(event, factory.create_metadata_updater()).model_dump()
