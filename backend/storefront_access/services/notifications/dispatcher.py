"""
NotificationDispatcher
======================

Delivers ticket notifications through one of two strategies chosen once at
startup:

- :class:`QueuedDelivery`: jobs go to a durable Redis queue with bounded,
  exponentially backed-off retries; a worker delivers them.
- :class:`DirectDelivery`: no queue is reachable, so each notification is
  sent inline, once, best effort.

The dispatcher is the one component that swallows downstream failures: a
notification that cannot be queued or sent is logged, and the ticket
operation that triggered it carries on.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any, Protocol

from redis.exceptions import RedisError  # type: ignore[import-untyped]

from storefront_access.infra.redis.redis_job_queue import RedisJobQueue
from storefront_access.services._shared.ports import JobQueue, Mailer
from storefront_access.services.notifications.jobs import (
    NotificationJob,
    NotificationKind,
    dump_job,
    send_now,
)
from storefront_access.services.notifications.worker import NotificationWorker

logger = logging.getLogger(__name__)


class DeliveryMode(str, Enum):
    QUEUED = "queued"
    DIRECT = "direct"


class Delivery(Protocol):
    mode: DeliveryMode

    def deliver(self, job: NotificationJob) -> None:
        """Queue or send ``job``; raise on failure."""
        ...

    def close(self) -> None: ...


class DirectDelivery:
    """Inline, at-most-once delivery through the mailer."""

    mode = DeliveryMode.DIRECT

    def __init__(self, mailer: Mailer) -> None:
        self.mailer = mailer

    def deliver(self, job: NotificationJob) -> None:
        send_now(self.mailer, job)

    def close(self) -> None:
        return None


class QueuedDelivery:
    """
    Enqueue jobs; an optional in-process worker consumes them.

    :param queue: Producer handle.
    :param worker: Consumer, owning its own queue connection.
    """

    mode = DeliveryMode.QUEUED

    def __init__(self, queue: JobQueue, worker: NotificationWorker | None = None) -> None:
        self.queue = queue
        self.worker = worker

    def deliver(self, job: NotificationJob) -> None:
        job_id = self.queue.enqueue(dump_job(job))
        logger.debug(
            "Notification queued",
            extra={"event": "notifications.enqueued", "job_id": job_id, "queue": self.queue.name},
        )

    def close(self) -> None:
        if self.worker is not None:
            self.worker.stop()
            self.worker.queue.close()
        self.queue.close()


QueueFactory = Callable[..., RedisJobQueue]


def select_delivery(
    *,
    mailer: Mailer,
    redis_url: str | None,
    queue_name: str = "ticket-updates",
    max_attempts: int = 3,
    backoff_ms: int = 1000,
    start_worker: bool = True,
    queue_factory: QueueFactory = RedisJobQueue.from_url,
) -> Delivery:
    """
    Pick the delivery strategy once.

    Direct mode is used when no Redis URL is configured, when building the
    queue raises, or when the backend does not answer a ``PING``. The
    degraded-mode warning is logged here, a single time.
    """
    if not redis_url:
        logger.warning(
            "No queue backend configured; ticket notifications will be sent inline",
            extra={"event": "notifications.degraded", "mode": DeliveryMode.DIRECT.value, "reason": "no_redis_url"},
        )
        return DirectDelivery(mailer)

    opts: dict[str, Any] = {"name": queue_name, "max_attempts": max_attempts, "backoff_ms": backoff_ms}
    producer: RedisJobQueue | None = None
    try:
        producer = queue_factory(redis_url, **opts)
        producer.ping()
        worker = None
        if start_worker:
            worker = NotificationWorker(queue_factory(redis_url, **opts), mailer)
    except (RedisError, ValueError, OSError) as exc:
        if producer is not None:
            producer.close()
        logger.warning(
            "Queue backend unavailable (%s); ticket notifications will be sent inline",
            type(exc).__name__,
            extra={"event": "notifications.degraded", "mode": DeliveryMode.DIRECT.value, "reason": "queue_unavailable"},
        )
        return DirectDelivery(mailer)

    if worker is not None:
        worker.start()
    logger.info(
        "Ticket notifications queued",
        extra={"event": "notifications.ready", "mode": DeliveryMode.QUEUED.value, "queue": queue_name},
    )
    return QueuedDelivery(producer, worker)


class NotificationDispatcher:
    """
    Entry point used by ticket operations.

    Construct with an explicit :class:`Delivery` (tests) or via :meth:`open`
    (application startup). Call :meth:`close` at shutdown.
    """

    def __init__(self, delivery: Delivery) -> None:
        self._delivery = delivery
        self._closed = False
        self._lock = threading.Lock()

    @classmethod
    def open(cls, config: Mapping[str, Any], mailer: Mailer, **overrides: Any) -> NotificationDispatcher:
        """Build from application settings (``REDIS_URL``, ``NOTIFICATION_*``)."""
        params: dict[str, Any] = {
            "redis_url": config.get("REDIS_URL"),
            "queue_name": config.get("NOTIFICATION_QUEUE_NAME", "ticket-updates"),
            "max_attempts": int(config.get("NOTIFICATION_MAX_ATTEMPTS", 3)),
            "backoff_ms": int(config.get("NOTIFICATION_BACKOFF_MS", 1000)),
            "start_worker": bool(config.get("NOTIFICATION_WORKER_INPROCESS", True)),
        }
        params.update(overrides)
        return cls(select_delivery(mailer=mailer, **params))

    @property
    def mode(self) -> DeliveryMode:
        return self._delivery.mode

    @property
    def delivery(self) -> Delivery:
        return self._delivery

    def notify_ticket_updated(
        self,
        *,
        to: str | None,
        title: str,
        number: int,
        status: str,
        ticket_id: str | None = None,
    ) -> bool:
        """
        Notify the requester that a ticket changed status.

        :returns: ``True`` when the job was queued (or sent, in direct mode).
            ``False`` when skipped or when delivery failed; failures never
            raise.
        """
        extra = {"event": "notifications.ticket_updated", "ticket_id": ticket_id, "mode": self.mode.value}
        if not to:
            logger.info("No requester email; notification skipped", extra=extra)
            return False
        if self._closed:
            logger.warning("Dispatcher closed; notification dropped", extra=extra)
            return False

        job = NotificationJob(
            kind=NotificationKind.TICKET_UPDATED,
            to=to,
            title=title,
            number=number,
            status=status,
            ticket_id=ticket_id,
        )
        try:
            self._delivery.deliver(job)
        except Exception:  # a failed notification must not fail the ticket operation
            logger.exception("Ticket notification failed", extra=extra)
            return False
        return True

    def close(self) -> None:
        """Stop the worker and close queue connections. Safe to call twice."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._delivery.close()
