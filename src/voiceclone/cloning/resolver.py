"""Polling engine that drives deferred clone jobs to a terminal state."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
import time
from typing import Protocol

from voiceclone.core.config import settings
from voiceclone.core.exceptions import (
    BackendError,
    JobStateError,
    ProtocolError,
    TransportError,
)
from voiceclone.core.models import (
    BackendOutcome,
    CloneJob,
    JobState,
    SynthesisFailed,
    SynthesisSucceeded,
)
from voiceclone.core.structured_logging import temporary_context
from voiceclone.utils.logger import get_logger, log_job_transition

logger = get_logger(__name__)

CONNECTIVITY_LOST_CODE = "POLL_CONNECTIVITY_LOST"

TickCallback = Callable[[CloneJob], None]


class StatusSource(Protocol):
    """Anything that can report the backend status of a deferred job."""

    async def fetch_status(self, job_id: str) -> BackendOutcome:
        """Query the backend once.

        Raises:
            TransportError: On connectivity failure (retried by the resolver)
            ProtocolError: On a malformed response
        """
        ...


async def wait_for_cancel(cancel_event: asyncio.Event, delay: float) -> bool:
    """Sleep for ``delay`` seconds or until cancellation, whichever comes first.

    Returns:
        True if cancellation was requested
    """
    if cancel_event.is_set():
        return True
    if delay <= 0:
        await asyncio.sleep(0)
        return cancel_event.is_set()
    try:
        await asyncio.wait_for(cancel_event.wait(), timeout=delay)
    except asyncio.TimeoutError:
        return False
    return True


class JobResolver:
    """Polls a pending job until it succeeds, fails, times out or is cancelled.

    Polls never overlap: the next status query is issued only after the
    previous one returned and the poll interval elapsed. Cancellation is
    checked at the start of each tick, so a result already in flight is
    still delivered.
    """

    def __init__(
        self,
        source: StatusSource,
        poll_interval: float | None = None,
        timeout: float | None = None,
        max_failures: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the resolver.

        Args:
            source: Status source, normally the VoiceCloneClient
            poll_interval: Seconds between polls (default from settings)
            timeout: Polling budget in seconds (default from settings)
            max_failures: Consecutive transport failures tolerated (default from settings)
            clock: Monotonic clock, injectable for tests
        """
        self._source = source
        self.poll_interval = (
            settings.poll_interval if poll_interval is None else poll_interval
        )
        self.timeout = settings.poll_timeout if timeout is None else timeout
        self.max_failures = (
            settings.max_poll_failures if max_failures is None else max_failures
        )
        self._clock = clock

    async def resolve(
        self,
        job: CloneJob,
        cancel_event: asyncio.Event | None = None,
        on_tick: TickCallback | None = None,
    ) -> CloneJob:
        """Poll until the job reaches a terminal state.

        Args:
            job: A job in the ``pending`` state
            cancel_event: Set by the caller to request cancellation
            on_tick: Liveness callback invoked after each still-pending poll

        Returns:
            The same job, now terminal
        """
        if job.state is not JobState.PENDING or not job.job_id:
            raise JobStateError(
                "Only pending jobs with a backend id can be resolved",
                current_state=job.state.value,
            )

        cancel_event = cancel_event or asyncio.Event()
        started = self._clock()
        failures = 0

        with temporary_context(request_id=job.request_id, job_id=job.job_id):
            while True:
                if cancel_event.is_set():
                    job.mark_cancelled("Cancelled by caller while waiting for the backend")
                    break

                elapsed = self._clock() - started
                if elapsed >= self.timeout:
                    job.mark_timed_out(
                        f"Gave up after {elapsed:.1f}s without a result "
                        f"(polling budget {self.timeout:.1f}s)"
                    )
                    break

                job.poll_count += 1
                try:
                    outcome = await self._source.fetch_status(job.job_id)
                except TransportError as e:
                    failures += 1
                    logger.warning(
                        f"Poll {job.poll_count} failed ({failures}/{self.max_failures}): {e.message}",
                        consecutive_failures=failures,
                    )
                    if failures >= self.max_failures:
                        job.mark_failed(
                            f"Lost connectivity to the backend after {failures} "
                            f"consecutive failed polls: {e.message}",
                            error_code=CONNECTIVITY_LOST_CODE,
                        )
                        break
                except (ProtocolError, BackendError) as e:
                    job.mark_failed(e.message, error_code=e.error_code)
                    break
                else:
                    failures = 0
                    if isinstance(outcome, SynthesisSucceeded):
                        job.mark_succeeded(outcome.artifact_location)
                        break
                    if isinstance(outcome, SynthesisFailed):
                        job.mark_failed(outcome.reason)
                        break
                    job.mark_pending()
                    if on_tick is not None:
                        on_tick(job)

                remaining = self.timeout - (self._clock() - started)
                await wait_for_cancel(cancel_event, min(self.poll_interval, remaining))

        log_job_transition(
            job.request_id,
            job.job_id,
            JobState.PENDING.value,
            job.state.value,
            poll_count=job.poll_count,
        )
        return job
