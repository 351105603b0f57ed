"""Queue consumer delivering ticket notifications."""

from __future__ import annotations

import logging
import threading

from marshmallow import ValidationError
from redis.exceptions import RedisError  # type: ignore[import-untyped]

from storefront_access.services._shared.ports import JobQueue, Mailer
from storefront_access.services.notifications.jobs import load_job, send_now

logger = logging.getLogger(__name__)


class NotificationWorker:
    """
    Reserve jobs, hand them to the mailer, acknowledge or retry.

    A failed delivery consumes one attempt and never stops the loop. Queue
    backend errors and unexpected exceptions are logged and the loop pauses
    before trying again; only a burst run returns early.

    :param queue: Queue to consume (a dedicated connection is expected).
    :param mailer: Synchronous delivery collaborator.
    :param poll_timeout: Seconds to block waiting for a job.
    """

    def __init__(self, queue: JobQueue, mailer: Mailer, *, poll_timeout: float = 1.0) -> None:
        self.queue = queue
        self.mailer = mailer
        self.poll_timeout = poll_timeout
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    # ------------------------------------------------------------------ #
    # Processing
    # ------------------------------------------------------------------ #

    def process_next(self, timeout: float = 0.0) -> bool:
        """Process at most one job. :returns: ``True`` if a job was reserved."""
        reserved = self.queue.reserve(timeout)
        if reserved is None:
            return False

        extra = {
            "event": "notifications.job",
            "job_id": reserved.id,
            "attempt": reserved.attempt,
            "queue": self.queue.name,
        }
        try:
            job = load_job(reserved.payload)
        except ValidationError as exc:
            logger.error("Dropping malformed notification job: %s", exc.messages, extra=extra)
            self.queue.fail(reserved, "malformed payload", retry=False)
            return True

        try:
            send_now(self.mailer, job)
        except Exception as exc:  # delivery failures only consume an attempt
            retrying = self.queue.fail(reserved, f"{type(exc).__name__}: {exc}")
            if retrying:
                logger.warning("Notification delivery failed; retry scheduled", extra=extra)
            else:
                logger.error("Notification delivery failed; attempts exhausted", extra=extra)
            return True

        self.queue.ack(reserved)
        logger.info("Notification delivered", extra={**extra, "ticket_id": job.ticket_id})
        return True

    def run(self, *, burst: bool = False) -> int:
        """
        Consume until :meth:`stop` is called.

        :param burst: Return as soon as no job is ready instead of waiting.
        :returns: Number of jobs reserved.
        """
        processed = 0
        while not self._stop.is_set():
            try:
                got = self.process_next(0.0 if burst else self.poll_timeout)
            except RedisError as exc:
                logger.warning(
                    "Queue backend error in worker: %s",
                    exc,
                    extra={"event": "notifications.worker_error", "queue": self.queue.name},
                )
                if burst:
                    break
                self._stop.wait(self.poll_timeout)
                continue
            except Exception:
                logger.exception(
                    "Unexpected error in notification worker",
                    extra={"event": "notifications.worker_error", "queue": self.queue.name},
                )
                if burst:
                    break
                self._stop.wait(self.poll_timeout)
                continue
            if got:
                processed += 1
            elif burst:
                break
        return processed

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def start(self) -> None:
        """Run the loop in a daemon thread."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self.run, name=f"notifications-{self.queue.name}", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
