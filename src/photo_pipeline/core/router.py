"""In-process topic with attribute-filtered fan-out to subscribers."""

import json
import uuid
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Callable, Collection, Dict, List, Mapping, Optional

from .envelope import MessageAttribute, SnsNotification
from .protocols import LoggerProtocol


FilterPolicy = Mapping[str, Collection[str]]


def matches(filter_policy: Optional[FilterPolicy], attributes: Mapping[str, str]) -> bool:
    """
    Decide whether a message with ``attributes`` passes ``filter_policy``.

    A missing or empty policy accepts everything. Otherwise every policy key
    must be present in the attributes with a value from that key's allow-list.
    """
    if not filter_policy:
        return True
    for name, allowed in filter_policy.items():
        value = attributes.get(name)
        if value is None or value not in allowed:
            return False
    return True


@dataclass
class Subscription:
    """A named endpoint attached to a topic."""

    name: str
    deliver: Callable[[SnsNotification], Any]
    filter_policy: Optional[Dict[str, List[str]]] = None


@dataclass
class PublishResult:
    """What happened to one published message."""

    message_id: str
    delivered: List[str] = field(default_factory=list)
    filtered: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)


def queue_endpoint(queue: Any) -> Callable[[SnsNotification], Any]:
    """Endpoint writing the notification JSON as the queue message body."""

    def deliver(notification: SnsNotification) -> Any:
        return queue.send(notification.model_dump_json(), notification.attributes())

    return deliver


def function_endpoint(handler: Callable[[Dict[str, Any]], Any]) -> Callable[[SnsNotification], Any]:
    """Endpoint invoking ``handler`` with a Lambda-style SNS event."""

    def deliver(notification: SnsNotification) -> Any:
        event = {
            "Records": [
                {
                    "EventSource": "aws:sns",
                    "EventVersion": "1.0",
                    "Sns": notification.model_dump(),
                }
            ]
        }
        return handler(event)

    return deliver


class Topic:
    """Fan-out topic; each subscriber is delivered to independently."""

    def __init__(self, name: str, logger: LoggerProtocol, max_workers: int = 8):
        self.name = name
        self.arn = f"arn:local:sns:{name}"
        self._logger = logger
        self._max_workers = max_workers
        self._subscriptions: List[Subscription] = []

    @property
    def subscriptions(self) -> List[Subscription]:
        return list(self._subscriptions)

    def subscribe(
        self,
        name: str,
        deliver: Callable[[SnsNotification], Any],
        filter_policy: Optional[Dict[str, List[str]]] = None,
    ) -> Subscription:
        """Attach an endpoint, optionally restricted by a filter policy."""
        subscription = Subscription(name=name, deliver=deliver, filter_policy=filter_policy)
        self._subscriptions.append(subscription)
        return subscription

    def publish(
        self, message: Any, attributes: Optional[Mapping[str, str]] = None
    ) -> PublishResult:
        """Wrap ``message`` in a notification and deliver it to matching subscribers."""
        attributes = dict(attributes or {})
        if not isinstance(message, str):
            message = json.dumps(message)

        notification = SnsNotification(
            MessageId=str(uuid.uuid4()),
            TopicArn=self.arn,
            Message=message,
            MessageAttributes={
                name: MessageAttribute(Value=value) for name, value in attributes.items()
            },
        )
        result = PublishResult(message_id=notification.MessageId)

        targets = []
        for subscription in self._subscriptions:
            if matches(subscription.filter_policy, attributes):
                targets.append(subscription)
            else:
                result.filtered.append(subscription.name)
                self._logger.debug(
                    f"Message {notification.MessageId} filtered out for {subscription.name}"
                )

        if not targets:
            return result

        with ThreadPoolExecutor(max_workers=min(self._max_workers, len(targets))) as executor:
            future_to_subscription = {
                executor.submit(subscription.deliver, notification): subscription
                for subscription in targets
            }

            for future in as_completed(future_to_subscription):
                subscription = future_to_subscription[future]
                try:
                    future.result()
                    result.delivered.append(subscription.name)
                except Exception as e:
                    result.failed[subscription.name] = str(e)
                    self._logger.error(
                        f"Delivery of {notification.MessageId} to {subscription.name} failed: {e}"
                    )

        return result
