"""Topic subscriber sending a confirmation email per uploaded image."""

from typing import Any, Dict, Mapping

from ..core import ConfirmationNotifier, load_config
from ..core.envelope import parse_upload_notifications
from ..core.factories import ServiceFactory
from ..core.models import BatchReport


def process_batch(event: Mapping[str, Any], notifier: ConfirmationNotifier) -> BatchReport:
    """Send confirmations for an SNS Lambda event. Never raises for a send failure."""
    return notifier.notify_all(parse_upload_notifications(event))


def handler(event: Dict[str, Any], context: Any = None) -> Dict[str, Any]:
    factory = ServiceFactory(load_config(require_mailer=True))
    return process_batch(event, factory.create_confirmation_notifier()).model_dump()
