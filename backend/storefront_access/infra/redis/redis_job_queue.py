# comments in English; reST docstrings
from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import redis  # type: ignore[import-untyped]

from storefront_access.services._shared.ports import JobQueue, QueuedJob

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "sfq"
DEFAULT_MAX_FAILED = 1000


@dataclass(slots=True)
class RedisJobQueue(JobQueue):
    """
    Redis-backed job queue with exponential-backoff retries.

    Layout (all keys under ``<prefix>:<name>``):

    * ``:wait``    list, producers ``LPUSH`` and workers take from the right;
    * ``:active``  list of envelopes currently being processed;
    * ``:delayed`` sorted set of retries scored by due time (ms);
    * ``:failed``  capped list of envelopes that spent every attempt;
    * ``:seq``     counter used for job ids.

    Envelopes are JSON documents ``{"id", "payload", "attempts",
    "max_attempts", "enqueued_at", "last_error"}``. Reservation moves an
    envelope atomically with ``LMOVE``; acknowledging removes it from
    ``:active``, so completed work does not accumulate.

    :param r: A Redis client (already connected).
    :param name: Queue name.
    :param max_attempts: Total attempts per job, the first one included.
    :param backoff_ms: Base delay; attempt ``n`` is retried after
        ``backoff_ms * 2 ** (n - 1)`` milliseconds.
    """

    r: redis.Redis
    name: str = "ticket-updates"
    max_attempts: int = 3
    backoff_ms: int = 1000
    prefix: str = DEFAULT_PREFIX
    max_failed: int = DEFAULT_MAX_FAILED
    clock: Callable[[], float] = field(default=time.time, repr=False)

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> RedisJobQueue:
        """Build a queue on its own connection pool. :raises ValueError: On a bad URL."""
        return cls(r=redis.Redis.from_url(url), **kwargs)

    # -------------------- helpers --------------------

    def _k(self, suffix: str) -> str:
        return f"{self.prefix}:{self.name}:{suffix}"

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    @staticmethod
    def _dump(envelope: dict[str, Any]) -> str:
        return json.dumps(envelope, separators=(",", ":"), sort_keys=True)

    @staticmethod
    def _text(raw: bytes | str) -> str:
        return raw.decode() if isinstance(raw, bytes) else raw

    def backoff_for(self, attempt: int) -> int:
        """Delay (ms) before retrying after failed attempt number ``attempt``."""
        return int(self.backoff_ms * 2 ** max(attempt - 1, 0))

    # -------------------- API ------------------------

    def ping(self) -> bool:
        return bool(self.r.ping())

    def enqueue(self, payload: dict[str, Any]) -> str:
        job_id = str(self.r.incr(self._k("seq")))
        envelope = {
            "id": job_id,
            "payload": payload,
            "attempts": 0,
            "max_attempts": self.max_attempts,
            "enqueued_at": self._now_ms(),
            "last_error": None,
        }
        self.r.lpush(self._k("wait"), self._dump(envelope))
        return job_id

    def promote_due(self) -> int:
        """
        Move retries whose delay has elapsed back to the wait list.

        ``ZREM`` decides ownership: when several workers see the same due
        entry only the one whose ``ZREM`` removed it pushes it.
        """
        due = self.r.zrangebyscore(self._k("delayed"), "-inf", self._now_ms())
        moved = 0
        for raw in due:
            if self.r.zrem(self._k("delayed"), raw) == 1:
                self.r.lpush(self._k("wait"), raw)
                moved += 1
        return moved

    def reserve(self, timeout: float = 1.0) -> QueuedJob | None:
        """
        Take the oldest ready job into ``:active``.

        Envelopes that cannot be decoded are moved straight to ``:failed``
        (wrapped, so :meth:`failed_jobs` stays readable) and the next one is
        tried without blocking again.
        """
        self.promote_due()
        raw = self.r.lmove(self._k("wait"), self._k("active"), "RIGHT", "LEFT")
        if raw is None and timeout > 0:
            raw = self.r.blmove(self._k("wait"), self._k("active"), timeout, "RIGHT", "LEFT")
        while raw is not None:
            text = self._text(raw)
            try:
                envelope = json.loads(text)
                return QueuedJob(
                    id=str(envelope["id"]),
                    payload=dict(envelope.get("payload") or {}),
                    attempt=int(envelope.get("attempts", 0)) + 1,
                    raw=text,
                )
            except (ValueError, TypeError, KeyError, AttributeError) as exc:
                self._bury(raw, text, exc)
            raw = self.r.lmove(self._k("wait"), self._k("active"), "RIGHT", "LEFT")
        return None

    def _bury(self, raw: bytes | str, text: str, exc: Exception) -> None:
        logger.error(
            "Dead-lettering undecodable job envelope",
            extra={"event": "notifications.envelope_corrupt", "queue": self.name},
        )
        wrapped = {
            "id": None,
            "payload": None,
            "raw": text[:500],
            "attempts": 0,
            "last_error": f"undecodable envelope: {type(exc).__name__}"[:500],
        }
        pipe = self.r.pipeline(transaction=True)
        pipe.lrem(self._k("active"), 1, raw)
        pipe.lpush(self._k("failed"), self._dump(wrapped))
        pipe.ltrim(self._k("failed"), 0, self.max_failed - 1)
        pipe.execute()

    def ack(self, job: QueuedJob) -> None:
        self.r.lrem(self._k("active"), 1, job.raw)

    def fail(self, job: QueuedJob, error: str, *, retry: bool = True) -> bool:
        envelope = json.loads(job.raw)
        envelope["attempts"] = job.attempt
        envelope["last_error"] = error[:500]
        updated = self._dump(envelope)
        budget = int(envelope.get("max_attempts", self.max_attempts))

        pipe = self.r.pipeline(transaction=True)
        pipe.lrem(self._k("active"), 1, job.raw)
        scheduled = retry and job.attempt < budget
        if scheduled:
            pipe.zadd(self._k("delayed"), {updated: self._now_ms() + self.backoff_for(job.attempt)})
        else:
            pipe.lpush(self._k("failed"), updated)
            pipe.ltrim(self._k("failed"), 0, self.max_failed - 1)
        pipe.execute()
        return scheduled

    def requeue_active(self) -> int:
        """Return envelopes stranded in ``:active`` (crashed worker) to the wait list."""
        moved = 0
        while self.r.lmove(self._k("active"), self._k("wait"), "LEFT", "RIGHT") is not None:
            moved += 1
        return moved

    def failed_jobs(self, limit: int = 50) -> list[dict[str, Any]]:
        return [json.loads(self._text(raw)) for raw in self.r.lrange(self._k("failed"), 0, limit - 1)]

    def stats(self) -> dict[str, int]:
        pipe = self.r.pipeline(transaction=False)
        pipe.llen(self._k("wait"))
        pipe.llen(self._k("active"))
        pipe.zcard(self._k("delayed"))
        pipe.llen(self._k("failed"))
        waiting, active, delayed, failed = pipe.execute()
        return {
            "waiting": int(waiting),
            "active": int(active),
            "delayed": int(delayed),
            "failed": int(failed),
        }

    def close(self) -> None:
        self.r.close()
