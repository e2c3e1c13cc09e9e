"""Automatic re-delivery of notifications with failed channels."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime, timedelta
from functools import partial
from typing import Callable, Literal

import anyio
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.entities import (
    Notification,
    NotificationChannel,
    RetrySweepReport,
    SendResult,
)
from app.infrastructure.notifications import ChannelProviders, DispatchOrchestrator
from app.infrastructure.notifications.dispatchers import DEFAULT_SEND_TIMEOUT_SECONDS
from app.infrastructure.repositories import NotificationRepository
from app.utils import ensure_app_timezone, now_in_app_timezone

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY_MINUTES = 5
DEFAULT_SWEEP_CONCURRENCY = 10

RetryOutcome = Literal["delivered", "rescheduled", "abandoned", "skipped", "error"]


def compute_next_retry_at(
    now: datetime,
    retry_count: int,
    base_delay_minutes: float = DEFAULT_BASE_DELAY_MINUTES,
) -> datetime:
    """Return ``now + base * 2**retry_count`` minutes."""

    return now + timedelta(minutes=base_delay_minutes * 2**retry_count)


def schedule_retry_after_failure(
    session: Session,
    notification: Notification,
    results: Mapping[NotificationChannel, SendResult],
    *,
    now: datetime,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> bool:
    """Make a notification with failed channels due on the next sweep.

    Used after the initial delivery and after a manual re-send. The retry
    counter is left untouched and an already scheduled retry is kept.
    """

    if all(result.success for result in results.values()):
        return False
    if notification.id is None or notification.retry_count >= max_attempts:
        return False

    scheduled = NotificationRepository(session).schedule_retry(notification.id, now)
    if scheduled:
        notification.next_retry_at = now
        logger.info("Notification %s has failed channels, retry scheduled", notification.id)
    return scheduled


async def _retry_notification(
    session_factory: Callable[[], Session],
    candidate: Notification,
    providers: ChannelProviders,
    *,
    now: datetime,
    max_attempts: int,
    base_delay_minutes: float,
    timeout: float,
) -> RetryOutcome:
    session = session_factory()
    try:
        repository = NotificationRepository(session)
        if not await anyio.to_thread.run_sync(repository.claim_retry, candidate):
            logger.debug("Notification %s was claimed by another sweep", candidate.id)
            return "skipped"

        notification = await anyio.to_thread.run_sync(repository.get, candidate.id)
        if notification is None:
            return "skipped"

        pending = notification.pending_channels()
        if not pending:
            await anyio.to_thread.run_sync(
                partial(
                    repository.record_retry_outcome,
                    notification.id,
                    retry_count=notification.retry_count,
                    next_retry_at=None,
                )
            )
            return "delivered"

        # A pass over channels that were never attempted (deferred delivery)
        # does not consume a retry.
        previously_attempted = any(
            notification.channel_status(channel).attempted for channel in pending
        )
        await DispatchOrchestrator(session, providers, timeout=timeout).dispatch(
            notification, pending
        )

        # A manual re-send may have delivered some channel meanwhile.
        stored = await anyio.to_thread.run_sync(repository.get, notification.id)
        if stored is None:
            return "skipped"

        if stored.is_delivered():
            retry_count = notification.retry_count + (1 if previously_attempted else 0)
            next_retry_at = None
            outcome: RetryOutcome = "delivered"
        elif not previously_attempted:
            retry_count = notification.retry_count
            next_retry_at = now
            outcome = "rescheduled"
        else:
            retry_count = notification.retry_count + 1
            next_retry_at = compute_next_retry_at(
                now, notification.retry_count, base_delay_minutes
            )
            outcome = "abandoned" if retry_count >= max_attempts else "rescheduled"

        await anyio.to_thread.run_sync(
            partial(
                repository.record_retry_outcome,
                notification.id,
                retry_count=retry_count,
                next_retry_at=next_retry_at,
            )
        )
        if outcome == "abandoned":
            logger.warning(
                "Notification %s abandoned after %s retries", notification.id, retry_count
            )
        return outcome
    except SQLAlchemyError:
        await anyio.to_thread.run_sync(session.rollback)
        logger.exception("Retry of notification %s failed", candidate.id)
        return "error"
    finally:
        session.close()


def _load_candidates(
    session_factory: Callable[[], Session], now: datetime, max_attempts: int, limit: int
) -> list[Notification]:
    with session_factory() as session:
        return list(
            NotificationRepository(session).list_retry_candidates(
                now, max_attempts=max_attempts, limit=limit
            )
        )


async def run_retry_sweep(
    session_factory: Callable[[], Session],
    providers: ChannelProviders,
    *,
    now: datetime | None = None,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay_minutes: float = DEFAULT_BASE_DELAY_MINUTES,
    batch_size: int = 100,
    timeout: float = DEFAULT_SEND_TIMEOUT_SECONDS,
    concurrency: int = DEFAULT_SWEEP_CONCURRENCY,
) -> RetrySweepReport:
    """Re-deliver the notifications whose retry is due.

    A notification is due when ``next_retry_at <= now`` and ``retry_count`` is
    below ``max_attempts``. Each one is claimed before dispatching so that
    overlapping sweeps skip it, and only channels not yet sent are attempted.
    """

    current_time = ensure_app_timezone(now) if now is not None else now_in_app_timezone()
    report = RetrySweepReport()

    try:
        candidates = await anyio.to_thread.run_sync(
            _load_candidates, session_factory, current_time, max_attempts, batch_size
        )
    except SQLAlchemyError:
        logger.exception("Could not load notifications due for retry")
        report.errors += 1
        return report

    report.total = len(candidates)
    if not candidates:
        return report

    limiter = anyio.CapacityLimiter(concurrency)

    async def _process(candidate: Notification) -> None:
        async with limiter:
            outcome = await _retry_notification(
                session_factory,
                candidate,
                providers,
                now=current_time,
                max_attempts=max_attempts,
                base_delay_minutes=base_delay_minutes,
                timeout=timeout,
            )
        if outcome == "error":
            report.errors += 1
        else:
            setattr(report, outcome, getattr(report, outcome) + 1)

    async with anyio.create_task_group() as task_group:
        for candidate in candidates:
            task_group.start_soon(_process, candidate)

    logger.info(
        "Retry sweep processed %s notification(s): %s delivered, %s rescheduled, "
        "%s abandoned, %s skipped, %s errors",
        report.total,
        report.delivered,
        report.rescheduled,
        report.abandoned,
        report.skipped,
        report.errors,
    )
    return report


__all__ = [
    "DEFAULT_BASE_DELAY_MINUTES",
    "DEFAULT_MAX_ATTEMPTS",
    "compute_next_retry_at",
    "run_retry_sweep",
    "schedule_retry_after_failure",
]
