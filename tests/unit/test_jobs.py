"""Unit tests for job orchestration."""

import asyncio
import json
from pathlib import Path
from unittest.mock import patch

import httpx
import pytest
import respx

from conftest import CLONE_URL, status_url
from voiceclone.cloning.client import VoiceCloneClient
from voiceclone.cloning.jobs import INTERNAL_ERROR_CODE, CloneOrchestrator
from voiceclone.cloning.resolver import JobResolver
from voiceclone.core.config import settings
from voiceclone.core.models import JobOutcome, OutcomeState


def success(url: str = "https://x/a.mp3") -> httpx.Response:
    return httpx.Response(200, json={"status": "success", "audioUrl": url})


def processing(task_id: str = "t1") -> httpx.Response:
    return httpx.Response(200, json={"status": "processing", "taskId": task_id})


def orchestrator_with(**resolver_kwargs: float) -> CloneOrchestrator:
    client = VoiceCloneClient()
    return CloneOrchestrator(client=client, resolver=JobResolver(client, **resolver_kwargs))


class TestCloneOrchestrator:
    """Test CloneOrchestrator end to end against a mocked backend."""

    @pytest.mark.asyncio
    async def test_synchronous_success(self, reference_file: Path) -> None:
        with respx.mock:
            route = respx.post(CLONE_URL).mock(return_value=success())
            async with CloneOrchestrator() as orchestrator:
                outcome = await orchestrator.run_clone_job(reference_file, "Hello", "en")

        assert outcome.to_event() == {
            "state": "succeeded",
            "artifactLocation": "https://x/a.mp3",
        }
        assert route.call_count == 1
        sent = json.loads(route.calls.last.request.content)
        assert sent["language"] == "en-US"
        assert sent["audio"].startswith("data:audio/")

    @pytest.mark.asyncio
    async def test_pending_job_is_polled(self, reference_file: Path) -> None:
        with respx.mock:
            respx.post(CLONE_URL).mock(return_value=processing())
            status = respx.get(status_url("t1")).mock(
                side_effect=[processing(), success("https://x/b.mp3")]
            )
            async with CloneOrchestrator() as orchestrator:
                outcome = await orchestrator.run_clone_job(reference_file, "Hello")

        assert outcome.succeeded
        assert outcome.artifact_location == "https://x/b.mp3"
        assert outcome.job is not None
        assert outcome.job.poll_count == 2
        assert status.call_count == 2

    @pytest.mark.asyncio
    async def test_backend_failure_is_reported(self, reference_file: Path) -> None:
        with respx.mock:
            respx.post(CLONE_URL).mock(
                return_value=httpx.Response(
                    200, json={"status": "failed", "errorMessage": "Audio too short"}
                )
            )
            async with CloneOrchestrator() as orchestrator:
                outcome = await orchestrator.run_clone_job(reference_file, "Hello")

        assert outcome.to_event() == {"state": "failed", "reason": "Audio too short"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("use_file", "text", "language", "code"),
        [
            (True, "   ", None, "MISSING_TEXT"),
            (False, "Hello", None, "MISSING_AUDIO"),
            (True, "Hello", "fr-FR", "UNSUPPORTED_LANGUAGE"),
        ],
    )
    async def test_invalid_drafts_never_reach_backend(
        self,
        reference_file: Path,
        use_file: bool,
        text: str,
        language: str | None,
        code: str,
    ) -> None:
        with respx.mock(assert_all_called=False) as respx_mock:
            route = respx_mock.post(CLONE_URL).mock(return_value=success())
            async with CloneOrchestrator() as orchestrator:
                outcome = await orchestrator.run_clone_job(
                    reference_file if use_file else None, text, language
                )

        assert outcome.state is OutcomeState.FAILED
        assert outcome.error_code == code
        assert route.call_count == 0

    @pytest.mark.asyncio
    async def test_oversized_audio_never_reaches_backend(
        self, reference_file: Path
    ) -> None:
        settings.max_audio_bytes = 16
        with respx.mock(assert_all_called=False) as respx_mock:
            route = respx_mock.post(CLONE_URL).mock(return_value=success())
            async with CloneOrchestrator() as orchestrator:
                outcome = await orchestrator.run_clone_job(reference_file, "Hello")

        assert outcome.error_code == "ENCODING_TOO_LARGE"
        assert route.call_count == 0

    @pytest.mark.asyncio
    async def test_cancel_before_submission(self, reference_file: Path) -> None:
        with respx.mock(assert_all_called=False) as respx_mock:
            route = respx_mock.post(CLONE_URL).mock(return_value=success())
            async with CloneOrchestrator() as orchestrator:
                handle = orchestrator.submit_clone_job(reference_file, "Hello")
                handle.cancel()
                outcome = await handle.wait()

        assert outcome.state is OutcomeState.CANCELLED
        assert outcome.error_code == "JOB_CANCELLED"
        assert route.call_count == 0

    @pytest.mark.asyncio
    async def test_cancel_while_polling(self, reference_file: Path) -> None:
        with respx.mock:
            respx.post(CLONE_URL).mock(return_value=processing())
            status = respx.get(status_url("t1")).mock(return_value=processing())
            async with orchestrator_with(poll_interval=60, timeout=300) as orchestrator:
                handle = orchestrator.submit_clone_job(reference_file, "Hello")
                asyncio.get_running_loop().call_later(0.05, handle.cancel)
                outcome = await asyncio.wait_for(handle.wait(), 2)

        assert outcome.to_event()["state"] == "cancelled"
        assert status.call_count == 1

    @pytest.mark.asyncio
    async def test_zero_poll_budget_reports_timed_out(self, reference_file: Path) -> None:
        with respx.mock(assert_all_called=False) as respx_mock:
            respx_mock.post(CLONE_URL).mock(return_value=processing())
            status = respx_mock.get(status_url("t1")).mock(return_value=success())
            async with orchestrator_with(poll_interval=0, timeout=0) as orchestrator:
                outcome = await orchestrator.run_clone_job(reference_file, "Hello")

        assert outcome.to_event()["state"] == "timedOut"
        assert status.call_count == 0

    @pytest.mark.asyncio
    async def test_submission_not_retried_by_default(self, reference_file: Path) -> None:
        with respx.mock:
            route = respx.post(CLONE_URL).mock(side_effect=httpx.ConnectError("down"))
            async with CloneOrchestrator() as orchestrator:
                outcome = await orchestrator.run_clone_job(reference_file, "Hello")

        assert outcome.error_code == "TRANSPORT_ERROR"
        assert route.call_count == 1

    @pytest.mark.asyncio
    async def test_submission_retries_when_configured(self, reference_file: Path) -> None:
        with respx.mock:
            route = respx.post(CLONE_URL).mock(
                side_effect=[httpx.ConnectError("down"), success()]
            )
            async with CloneOrchestrator(submit_retries=2, retry_backoff=0) as orchestrator:
                outcome = await orchestrator.run_clone_job(reference_file, "Hello")

        assert outcome.succeeded
        assert route.call_count == 2

    @pytest.mark.asyncio
    async def test_cancel_during_retry_backoff(self, reference_file: Path) -> None:
        """Cancelling while waiting to retry the submission reports cancelled."""
        with respx.mock:
            route = respx.post(CLONE_URL).mock(side_effect=httpx.ConnectError("down"))
            async with CloneOrchestrator(submit_retries=3, retry_backoff=5.0) as orchestrator:
                handle = orchestrator.submit_clone_job(reference_file, "Hello")
                asyncio.get_running_loop().call_later(0.1, handle.cancel)
                outcome = await asyncio.wait_for(handle.wait(), 2)

        assert outcome.state is OutcomeState.CANCELLED
        assert outcome.error_code == "JOB_CANCELLED"
        assert route.call_count == 1

    @pytest.mark.asyncio
    async def test_unexpected_error_becomes_outcome(self, reference_file: Path) -> None:
        with patch(
            "voiceclone.cloning.jobs.validate", side_effect=RuntimeError("boom")
        ):
            async with CloneOrchestrator() as orchestrator:
                outcome = await orchestrator.run_clone_job(reference_file, "Hello")

        assert outcome.state is OutcomeState.FAILED
        assert outcome.error_code == INTERNAL_ERROR_CODE
        assert "boom" in outcome.reason

    @pytest.mark.asyncio
    async def test_done_callback_fires_once(self, reference_file: Path) -> None:
        received: list[JobOutcome] = []
        with respx.mock:
            respx.post(CLONE_URL).mock(return_value=success())
            async with CloneOrchestrator() as orchestrator:
                handle = orchestrator.submit_clone_job(reference_file, "Hello")
                assert handle.outcome is None
                handle.add_done_callback(received.append)
                outcome = await handle.wait()
                await asyncio.sleep(0)

        assert handle.done()
        assert received == [outcome]
        assert handle.outcome == outcome

    @pytest.mark.asyncio
    async def test_concurrent_jobs_are_isolated(self, reference_file: Path) -> None:
        def by_text(request: httpx.Request) -> httpx.Response:
            text = json.loads(request.content)["text"]
            return success("https://x/one.mp3") if text == "one" else processing("t2")

        with respx.mock:
            respx.post(CLONE_URL).mock(side_effect=by_text)
            respx.get(status_url("t2")).mock(return_value=success("https://x/two.mp3"))
            async with CloneOrchestrator() as orchestrator:
                first = orchestrator.submit_clone_job(reference_file, "one")
                second = orchestrator.submit_clone_job(reference_file, "two")
                outcomes = await asyncio.gather(first.wait(), second.wait())

        assert first.request_id != second.request_id
        assert [o.artifact_location for o in outcomes] == [
            "https://x/one.mp3",
            "https://x/two.mp3",
        ]
        assert outcomes[0].job.request_id == first.request_id
        assert outcomes[1].job.job_id == "t2"

    @pytest.mark.asyncio
    async def test_cancelling_one_job_leaves_others(self, reference_file: Path) -> None:
        with respx.mock(assert_all_called=False) as respx_mock:
            respx_mock.post(CLONE_URL).mock(return_value=success())
            async with CloneOrchestrator() as orchestrator:
                cancelled = orchestrator.submit_clone_job(reference_file, "one")
                kept = orchestrator.submit_clone_job(reference_file, "two")
                cancelled.cancel()
                results = await asyncio.gather(cancelled.wait(), kept.wait())

        assert results[0].state is OutcomeState.CANCELLED
        assert results[1].succeeded
        assert not kept.cancel_requested
