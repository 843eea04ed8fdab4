"""Buffered queue with per-message attempt tracking and dead-lettering."""

import threading
import time
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from .models import BatchReport, Outcome, RetryableFailure, TerminalFailure
from .protocols import LoggerProtocol


class MessageState(str, Enum):
    """Lifecycle of a queued message."""

    PENDING = "pending"
    DELIVERED = "delivered"
    ACKNOWLEDGED = "acknowledged"
    DEAD_LETTERED = "dead_lettered"


@dataclass
class QueueMessage:
    """A message owned by the queue, including its attempt counter."""

    message_id: str
    body: str
    attributes: Dict[str, str] = field(default_factory=dict)
    attempts: int = 0
    state: MessageState = MessageState.PENDING
    receipt_handle: str = ""
    visible_deadline: float = 0.0


@dataclass(frozen=True)
class ReceivedMessage:
    """What a consumer sees of a delivered message."""

    message_id: str
    body: str
    attributes: Dict[str, str]
    receipt_handle: str


class BufferedQueue:
    """
    Thread-safe in-memory queue with SQS-like redrive semantics.

    A delivered message must be acknowledged within ``visibility_timeout``
    seconds. Each failed attempt (an explicit ``release`` or an expired
    visibility window) increments the message's attempt counter; once it
    reaches ``max_receive_count`` the message is moved to the dead-letter
    queue. A queue without a dead-letter queue retries indefinitely.

    Acknowledged and dead-lettered messages leave the queue. The last
    ``history_size`` of them are kept for inspection through ``history``.
    """

    def __init__(
        self,
        name: str,
        max_receive_count: int = 3,
        visibility_timeout: float = 30.0,
        dead_letter_queue: Optional["BufferedQueue"] = None,
        clock: Callable[[], float] = time.monotonic,
        history_size: int = 1000,
    ):
        if max_receive_count < 1:
            raise ValueError("max_receive_count must be at least 1")
        self.name = name
        self.max_receive_count = max_receive_count
        self.visibility_timeout = visibility_timeout
        self.dead_letter_queue = dead_letter_queue
        self._clock = clock
        self._messages: "OrderedDict[str, QueueMessage]" = OrderedDict()
        self._settled: "OrderedDict[str, QueueMessage]" = OrderedDict()
        self._history_size = history_size
        self.acknowledged_count = 0
        self.dead_lettered_count = 0
        self._condition = threading.Condition()

    def send(self, body: str, attributes: Optional[Dict[str, str]] = None) -> str:
        """Enqueue a message and return its id."""
        message = QueueMessage(
            message_id=str(uuid.uuid4()), body=body, attributes=dict(attributes or {})
        )
        with self._condition:
            self._messages[message.message_id] = message
            self._condition.notify_all()
        return message.message_id

    def receive_batch(
        self, max_messages: int = 5, wait_time: float = 0.0
    ) -> List[ReceivedMessage]:
        """
        Deliver up to ``max_messages`` pending messages.

        Blocks until ``max_messages`` are available or ``wait_time`` seconds
        have passed, then returns whatever is available (possibly nothing).
        """
        deadline = time.monotonic() + wait_time
        dead: List[QueueMessage] = []

        with self._condition:
            while True:
                dead.extend(self._reclaim_expired())
                pending = self._pending()
                remaining = deadline - time.monotonic()
                if len(pending) >= max_messages or remaining <= 0:
                    break
                self._condition.wait(timeout=remaining)

            batch = []
            now = self._clock()
            for message in pending[:max_messages]:
                message.state = MessageState.DELIVERED
                message.receipt_handle = str(uuid.uuid4())
                message.visible_deadline = now + self.visibility_timeout
                batch.append(
                    ReceivedMessage(
                        message_id=message.message_id,
                        body=message.body,
                        attributes=dict(message.attributes),
                        receipt_handle=message.receipt_handle,
                    )
                )

        self._forward_to_dead_letter(dead)
        return batch

    def acknowledge(self, received: ReceivedMessage) -> bool:
        """Mark a delivered message as done. Stale receipts are ignored."""
        with self._condition:
            message = self._current(received)
            if message is None:
                return False
            message.state = MessageState.ACKNOWLEDGED
            self.acknowledged_count += 1
            self._settle(message)
            return True

    def release(self, received: ReceivedMessage) -> bool:
        """Record a failed attempt; the message is retried or dead-lettered."""
        with self._condition:
            message = self._current(received)
            if message is None:
                return False
            dead = self._record_failure(message)
        self._forward_to_dead_letter(dead)
        return True

    def get_message(self, message_id: str) -> Optional[QueueMessage]:
        """Look up a live message, or a settled one still in the history."""
        with self._condition:
            return self._messages.get(message_id) or self._settled.get(message_id)

    def messages(self, state: Optional[MessageState] = None) -> List[QueueMessage]:
        """Messages still owned by the queue (pending or delivered)."""
        with self._condition:
            return [m for m in self._messages.values() if state is None or m.state == state]

    def history(self, state: Optional[MessageState] = None) -> List[QueueMessage]:
        """Recently acknowledged or dead-lettered messages, oldest first."""
        with self._condition:
            return [m for m in self._settled.values() if state is None or m.state == state]

    def depth(self) -> int:
        """Number of messages waiting for delivery."""
        with self._condition:
            return len(self._pending())

    def in_flight(self) -> int:
        with self._condition:
            return len(
                [m for m in self._messages.values() if m.state == MessageState.DELIVERED]
            )

    def _pending(self) -> List[QueueMessage]:
        return [m for m in self._messages.values() if m.state == MessageState.PENDING]

    def _current(self, received: ReceivedMessage) -> Optional[QueueMessage]:
        message = self._messages.get(received.message_id)
        if (
            message is None
            or message.state != MessageState.DELIVERED
            or message.receipt_handle != received.receipt_handle
        ):
            return None
        return message

    def _reclaim_expired(self) -> List[QueueMessage]:
        now = self._clock()
        dead: List[QueueMessage] = []
        for message in list(self._messages.values()):
            if message.state == MessageState.DELIVERED and message.visible_deadline <= now:
                dead.extend(self._record_failure(message))
        return dead

    def _record_failure(self, message: QueueMessage) -> List[QueueMessage]:
        # Caller holds the lock.
        message.attempts += 1
        message.receipt_handle = ""
        if self.dead_letter_queue is not None and message.attempts >= self.max_receive_count:
            message.state = MessageState.DEAD_LETTERED
            self.dead_lettered_count += 1
            self._settle(message)
            return [message]
        message.state = MessageState.PENDING
        self._condition.notify_all()
        return []

    def _settle(self, message: QueueMessage) -> None:
        # Caller holds the lock.
        del self._messages[message.message_id]
        self._settled[message.message_id] = message
        while len(self._settled) > self._history_size:
            self._settled.popitem(last=False)

    def _forward_to_dead_letter(self, messages: List[QueueMessage]) -> None:
        for message in messages:
            attributes = dict(message.attributes)
            attributes["source_message_id"] = message.message_id
            self.dead_letter_queue.send(message.body, attributes)


class QueueConsumer:
    """Polls a queue in batches and maps each message's outcome onto the queue."""

    def __init__(
        self,
        queue: BufferedQueue,
        process: Callable[[str], Outcome],
        logger: LoggerProtocol,
        batch_size: int = 5,
        batching_window: float = 5.0,
    ):
        self._queue = queue
        self._process = process
        self._logger = logger
        self._batch_size = batch_size
        self._batching_window = batching_window

    def poll(self) -> BatchReport:
        """Receive one batch and settle every message in it."""
        batch = self._queue.receive_batch(self._batch_size, self._batching_window)
        report = BatchReport(received=len(batch))

        for message in batch:
            try:
                outcome = self._process(message.body)
            except Exception as e:
                outcome = RetryableFailure(error=e)

            if isinstance(outcome, RetryableFailure):
                self._logger.warning(
                    f"Message {message.message_id} failed on {self._queue.name}: {outcome.error}"
                )
                self._queue.release(message)
                report.retried += 1
                report.errors.append(str(outcome.error))
            elif isinstance(outcome, TerminalFailure):
                self._logger.error(
                    f"Discarding message {message.message_id} from {self._queue.name}: {outcome.error}"
                )
                self._queue.acknowledge(message)
                report.discarded += 1
                report.errors.append(str(outcome.error))
            else:
                self._queue.acknowledge(message)
                report.succeeded += 1

        return report

    def drain(self, max_polls: int = 100) -> BatchReport:
        """Poll until a poll comes back empty or ``max_polls`` is reached."""
        total = BatchReport()
        for _ in range(max_polls):
            report = self.poll()
            if report.received == 0:
                break
            total.received += report.received
            total.succeeded += report.succeeded
            total.retried += report.retried
            total.discarded += report.discarded
            total.errors.extend(report.errors)
        return total
