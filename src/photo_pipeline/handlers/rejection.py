"""Dead-letter queue consumer sending a failure email per rejected image."""

from typing import Any, Dict, Mapping

from ..core import RejectionHandler, load_config
from ..core.factories import ServiceFactory
from ..core.models import BatchReport


def process_batch(event: Mapping[str, Any], rejection_handler: RejectionHandler) -> BatchReport:
    """Send rejections for an SQS batch drained from the dead-letter queue."""
    bodies = [record.get("body", "") for record in event.get("Records", [])]
    return rejection_handler.handle_dead_letters(bodies)


def handler(event: Dict[str, Any], context: Any = None) -> Dict[str, Any]:
    factory = ServiceFactory(load_config(require_mailer=True))
    return process_batch(event, factory.create_rejection_handler()).model_dump()
