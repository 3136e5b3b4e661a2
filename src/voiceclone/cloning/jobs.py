"""Job orchestration: read, validate, submit and resolve one clone job per task."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any
import uuid

from voiceclone.core.config import settings
from voiceclone.core.exceptions import JobCancelledError, TransportError, VoiceCloneError
from voiceclone.core.models import (
    CloneJob,
    CloneRequest,
    JobOutcome,
    JobState,
    LanguageCode,
    OutcomeState,
)
from voiceclone.core.structured_logging import temporary_context
from voiceclone.utils.logger import get_logger

from .client import VoiceCloneClient
from .encoder import AudioSource, encode_audio
from .resolver import JobResolver, TickCallback, wait_for_cancel
from .validator import validate

logger = get_logger(__name__)

INTERNAL_ERROR_CODE = "INTERNAL_ERROR"

OutcomeCallback = Callable[[JobOutcome], None]


class CloneJobHandle:
    """Subscription handle for one submitted job.

    Yields exactly one terminal :class:`JobOutcome`, either awaited through
    :meth:`wait` or pushed to callbacks registered with
    :meth:`add_done_callback`.
    """

    def __init__(self, request_id: str | None = None) -> None:
        self.request_id = request_id or str(uuid.uuid4())
        self._cancel_event = asyncio.Event()
        self._task: asyncio.Task[JobOutcome] | None = None

    def _attach(self, task: asyncio.Task[JobOutcome]) -> None:
        self._task = task

    @property
    def cancel_event(self) -> asyncio.Event:
        return self._cancel_event

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_event.is_set()

    def cancel(self) -> None:
        """Request cooperative cancellation.

        Best effort: a submission or poll already in flight completes, and a
        terminal result it brings back is still delivered.
        """
        if not self._cancel_event.is_set():
            logger.info("Cancellation requested", request_id=self.request_id)
        self._cancel_event.set()

    def done(self) -> bool:
        return self._task is not None and self._task.done()

    def _outcome_of(self, task: asyncio.Task[JobOutcome]) -> JobOutcome:
        if task.cancelled():
            return JobOutcome(
                state=OutcomeState.CANCELLED,
                reason="Job task was cancelled",
                error_code=JobCancelledError.default_code,
            )
        return task.result()

    @property
    def outcome(self) -> JobOutcome | None:
        """The terminal outcome, or None while the job is running."""
        if not self.done():
            return None
        return self._outcome_of(self._task)  # type: ignore[arg-type]

    async def wait(self) -> JobOutcome:
        """Wait for the job's terminal outcome."""
        if self._task is None:
            raise RuntimeError("Handle is not attached to a running job")
        await asyncio.wait({self._task})
        return self._outcome_of(self._task)

    def add_done_callback(self, callback: OutcomeCallback) -> None:
        """Register a callback receiving the terminal outcome exactly once."""
        if self._task is None:
            raise RuntimeError("Handle is not attached to a running job")
        self._task.add_done_callback(lambda task: callback(self._outcome_of(task)))


class CloneOrchestrator:
    """
    Runs clone jobs: encode → validate → submit → poll.

    Every failure ends as a reported ``JobOutcome``; nothing raised inside a
    job escapes to the event loop.

    Example:
        async with CloneOrchestrator() as orchestrator:
            handle = orchestrator.submit_clone_job("voice.wav", "Hello")
            outcome = await handle.wait()
    """

    def __init__(
        self,
        client: VoiceCloneClient | None = None,
        resolver: JobResolver | None = None,
        submit_retries: int | None = None,
        retry_backoff: float = 1.0,
    ) -> None:
        self.client = client or VoiceCloneClient()
        self.resolver = resolver or JobResolver(self.client)
        self.submit_retries = (
            settings.submit_retries if submit_retries is None else submit_retries
        )
        self.retry_backoff = retry_backoff

    async def close(self) -> None:
        await self.client.close()

    async def __aenter__(self) -> "CloneOrchestrator":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    def submit_clone_job(
        self,
        raw_file: AudioSource | None,
        raw_text: str | None,
        language: str | LanguageCode | None = None,
        model: str | None = None,
        *,
        filename: str | None = None,
        on_tick: TickCallback | None = None,
    ) -> CloneJobHandle:
        """Start a clone job on the running event loop.

        Args:
            raw_file: Path to the reference audio or its raw bytes
            raw_text: Text to synthesize
            language: Locale tag or alias; unset means the configured default
            model: Optional synthesis model variant
            filename: File name for MIME detection when ``raw_file`` is bytes
            on_tick: Liveness callback for each pending poll

        Returns:
            A handle yielding exactly one terminal outcome
        """
        handle = CloneJobHandle()
        task = asyncio.create_task(
            self._run(handle, raw_file, raw_text, language, model, filename, on_tick),
            name=f"voiceclone-{handle.request_id}",
        )
        handle._attach(task)
        return handle

    async def run_clone_job(
        self,
        raw_file: AudioSource | None,
        raw_text: str | None,
        language: str | LanguageCode | None = None,
        model: str | None = None,
        **kwargs: Any,
    ) -> JobOutcome:
        """Submit a job and wait for its outcome."""
        handle = self.submit_clone_job(raw_file, raw_text, language, model, **kwargs)
        return await handle.wait()

    async def _submit(self, request: CloneRequest, cancel_event: asyncio.Event) -> CloneJob:
        attempt = 0
        while True:
            try:
                return await self.client.submit(request)
            except TransportError as e:
                if attempt >= self.submit_retries:
                    raise
                delay = self.retry_backoff * (2 ** attempt)
                attempt += 1
                logger.warning(
                    f"Submission failed, retry {attempt}/{self.submit_retries} in {delay:.1f}s: {e.message}"
                )
                if await wait_for_cancel(cancel_event, delay):
                    raise JobCancelledError(
                        "Cancelled while waiting to retry submission"
                    ) from e

    async def _run(
        self,
        handle: CloneJobHandle,
        raw_file: AudioSource | None,
        raw_text: str | None,
        language: str | LanguageCode | None,
        model: str | None,
        filename: str | None,
        on_tick: TickCallback | None,
    ) -> JobOutcome:
        job: CloneJob | None = None
        with temporary_context(request_id=handle.request_id):
            try:
                audio = await encode_audio(raw_file, filename=filename) if raw_file else None
                request = validate(audio, raw_text, language, model)
                request.request_id = handle.request_id

                if handle.cancel_requested:
                    raise JobCancelledError("Cancelled before submission")

                job = await self._submit(request, handle.cancel_event)
                if job.state is JobState.PENDING:
                    job = await self.resolver.resolve(job, handle.cancel_event, on_tick)
                outcome = JobOutcome.from_job(job)

            except JobCancelledError as e:
                logger.info(f"Clone job cancelled: {e.message}")
                outcome = JobOutcome(
                    state=OutcomeState.CANCELLED,
                    reason=e.message,
                    error_code=e.error_code,
                    job=job,
                )

            except VoiceCloneError as e:
                logger.warning(f"Clone job failed: {e}", **e.to_dict())
                outcome = JobOutcome.from_error(e, job)

            except Exception as e:
                logger.exception(f"Unexpected error in clone job: {e}")
                outcome = JobOutcome(
                    state=OutcomeState.FAILED,
                    reason=f"Unexpected error: {e}",
                    error_code=INTERNAL_ERROR_CODE,
                    job=job,
                )

            logger.info(
                f"Clone job finished: {outcome.state.value}",
                state=outcome.state.value,
                error_code=outcome.error_code,
            )
            return outcome
