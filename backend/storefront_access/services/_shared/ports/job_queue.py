from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol


@dataclass(frozen=True, slots=True)
class QueuedJob:
    """
    A job reserved by a worker.

    :ivar id: Queue-assigned identifier.
    :ivar payload: Serialized job body.
    :ivar attempt: 1-based number of the attempt about to run.
    :ivar raw: Envelope exactly as stored (needed to acknowledge it).
    """

    id: str
    payload: dict[str, Any]
    attempt: int
    raw: str


class JobQueue(Protocol):
    """
    Durable queue with bounded retries.

    Jobs are removed once acknowledged. A failed attempt is retried after an
    exponential delay until the attempt budget is spent, then the job is
    parked in a bounded dead-letter list.
    """

    name: str
    max_attempts: int

    def enqueue(self, payload: dict[str, Any]) -> str:
        """Store ``payload`` and return its job id."""
        ...

    def reserve(self, timeout: float = 1.0) -> QueuedJob | None:
        """Move the next due job to the active set, or return ``None`` on timeout."""
        ...

    def ack(self, job: QueuedJob) -> None:
        """Remove a successfully processed job."""
        ...

    def fail(self, job: QueuedJob, error: str, *, retry: bool = True) -> bool:
        """
        Record a failed attempt.

        :param retry: ``False`` sends the job straight to the dead-letter list.
        :returns: ``True`` if a retry was scheduled.
        """
        ...

    def stats(self) -> dict[str, int]: ...

    def close(self) -> None: ...
