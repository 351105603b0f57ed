"""Flask CLI commands for the ticket notification queue."""

from __future__ import annotations

import json
import logging

import click
from flask import current_app
from flask.cli import with_appcontext
from redis.exceptions import RedisError  # type: ignore[import-untyped]

from storefront_access.infra.redis.redis_job_queue import RedisJobQueue
from storefront_access.services.notifications.worker import NotificationWorker
from storefront_access.services.registry import get_services

LOGGER = logging.getLogger(__name__)


def _open_queue() -> RedisJobQueue:
    """Connect to the configured queue or abort the command."""
    config = current_app.config
    url = config.get("REDIS_URL")
    if not url:
        raise click.UsageError("REDIS_URL is not configured; notifications are delivered inline.")
    try:
        queue = RedisJobQueue.from_url(
            url,
            name=config.get("NOTIFICATION_QUEUE_NAME", "ticket-updates"),
            max_attempts=int(config.get("NOTIFICATION_MAX_ATTEMPTS", 3)),
            backoff_ms=int(config.get("NOTIFICATION_BACKOFF_MS", 1000)),
        )
        queue.ping()
    except (RedisError, ValueError, OSError) as exc:
        raise click.ClickException(f"Queue backend unavailable: {exc}") from exc
    return queue


@click.group("notifications")
def notifications_cli() -> None:
    """Inspect and consume the ticket notification queue."""


@notifications_cli.command("work")
@click.option("--burst", is_flag=True, help="Exit once no job is ready.")
@click.option("--requeue-active", is_flag=True, help="Return jobs stranded by a crashed worker first.")
@with_appcontext
def work(burst: bool, requeue_active: bool) -> None:
    """Run a notification worker in the foreground."""
    queue = _open_queue()
    worker = NotificationWorker(queue, get_services().mailer)
    try:
        if requeue_active:
            moved = queue.requeue_active()
            click.echo(f"Requeued {moved} stranded job(s).")
        processed = worker.run(burst=burst)
    except KeyboardInterrupt:
        worker.stop()
        processed = 0
    finally:
        queue.close()
    LOGGER.info("Worker stopped", extra={"event": "notifications.worker_stopped", "value": processed})
    click.echo(f"Processed {processed} job(s).")


@notifications_cli.command("stats")
@with_appcontext
def stats() -> None:
    """Print queue depth per state."""
    queue = _open_queue()
    try:
        counters = queue.stats()
    finally:
        queue.close()
    width = max(len(name) for name in counters)
    click.echo(f"Queue {queue.name}:")
    for name, value in counters.items():
        click.echo(f"  {name.ljust(width)}  {value:>5}")


@notifications_cli.command("failed")
@click.option("--limit", default=20, show_default=True, type=click.IntRange(min=1))
@with_appcontext
def failed(limit: int) -> None:
    """Show jobs that spent every delivery attempt."""
    queue = _open_queue()
    try:
        envelopes = queue.failed_jobs(limit)
    finally:
        queue.close()
    if not envelopes:
        click.echo("No failed jobs.")
        return
    for envelope in envelopes:
        click.echo(json.dumps(envelope, sort_keys=True))
