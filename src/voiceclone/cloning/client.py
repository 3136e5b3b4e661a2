"""HTTP client for the voice clone backend."""

from __future__ import annotations

from pathlib import Path
import time
from typing import Any
from urllib.parse import quote, urlparse

import aiofiles
import httpx
from pydantic import ValidationError

from voiceclone import __version__
from voiceclone.core.config import settings
from voiceclone.core.exceptions import (
    BackendError,
    ProtocolError,
    TransportError,
    handle_transport_error,
)
from voiceclone.core.models import (
    BackendOutcome,
    CloneJob,
    CloneRequest,
    CloneResponse,
    SynthesisPending,
    SynthesisSucceeded,
)
from voiceclone.utils.logger import get_logger, log_job_transition, log_performance

logger = get_logger(__name__)

# Envelope code the backend uses for a successful call
ENVELOPE_OK = 200


class VoiceCloneClient:
    """
    Asynchronous client for the voice clone backend.

    Each call issues exactly one HTTP request; retries are the caller's
    decision.

    Example:
        async with VoiceCloneClient() as client:
            job = await client.submit(request)
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout = timeout or settings.request_timeout
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=self.timeout)

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "VoiceCloneClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    def clone_url(self) -> str:
        return f"{self.base_url}{settings.clone_path}"

    def status_url(self, job_id: str) -> str:
        return f"{self.base_url}{settings.status_path.format(task_id=quote(job_id, safe=''))}"

    def _get_headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "User-Agent": f"voiceclone-client/{__version__}",
        }

    def _handle_response(self, response: httpx.Response, url: str) -> dict[str, Any]:
        """Check status, decode JSON and unwrap the ``{code, data}`` envelope."""
        if response.status_code >= 500:
            raise TransportError(
                f"Backend unavailable: HTTP {response.status_code}",
                url=url,
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            if response.status_code >= 400:
                raise BackendError(
                    f"Request rejected: HTTP {response.status_code}",
                    status_code=response.status_code,
                    url=url,
                ) from e
            raise ProtocolError(
                "Backend response is not valid JSON",
                url=url,
                body_sample=response.text,
                cause=e,
            ) from e

        if response.status_code >= 400:
            message = body.get("message") if isinstance(body, dict) else None
            raise BackendError(
                message or f"Request rejected: HTTP {response.status_code}",
                status_code=response.status_code,
                url=url,
            )

        if not isinstance(body, dict):
            raise ProtocolError(
                "Backend response is not a JSON object", url=url, body_sample=str(body)
            )

        if "code" in body:
            if body["code"] != ENVELOPE_OK:
                raise BackendError(
                    body.get("message") or "Request failed",
                    url=url,
                    details={"backend_code": body["code"]},
                )
            body = body.get("data")
            if not isinstance(body, dict):
                raise ProtocolError(
                    "Envelope data is not a JSON object", url=url, body_sample=str(body)
                )

        return body

    async def _request(
        self, method: str, url: str, json: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        try:
            response = await self._client.request(
                method=method,
                url=url,
                json=json,
                headers=self._get_headers(),
            )
        except httpx.TransportError as e:
            handle_transport_error(e, url)
        return self._handle_response(response, url)

    @staticmethod
    def _parse_outcome(
        body: dict[str, Any], url: str, job_id: str | None = None
    ) -> BackendOutcome:
        try:
            parsed = CloneResponse.model_validate(body)
        except ValidationError as e:
            raise ProtocolError(
                f"Backend response does not match the clone schema: {e.error_count()} error(s)",
                url=url,
                body_sample=str(body),
                cause=e,
            ) from e
        return parsed.to_outcome(job_id=job_id)

    async def submit(self, request: CloneRequest) -> CloneJob:
        """Submit a clone request.

        Returns:
            The job, already ``succeeded``/``failed`` if the backend answered
            synchronously, otherwise ``pending`` with the backend task id

        Raises:
            ProtocolError: If the response violates the schema
            TransportError: If the backend cannot be reached
            BackendError: If the backend rejects the request
        """
        job = CloneJob(request_id=request.request_id)
        url = self.clone_url()
        start_time = time.time()

        logger.info(
            f"Submitting clone request ({len(request.target_text)} chars, "
            f"{request.language_code.value})",
            request_id=request.request_id,
            url=url,
        )
        body = await self._request("POST", url, json=request.to_payload())
        outcome = self._parse_outcome(body, url)
        log_performance(
            "clone_submit", (time.time() - start_time) * 1000, request_id=job.request_id
        )

        if isinstance(outcome, SynthesisSucceeded):
            job.mark_succeeded(outcome.artifact_location)
        elif isinstance(outcome, SynthesisPending):
            job.mark_pending(outcome.job_id)
        else:
            job.mark_failed(outcome.reason)

        log_job_transition(job.request_id, job.job_id, "submitted", job.state.value)
        return job

    async def fetch_status(self, job_id: str) -> BackendOutcome:
        """Query the backend once for the status of a deferred job."""
        url = self.status_url(job_id)
        body = await self._request("GET", url)
        outcome = self._parse_outcome(body, url, job_id=job_id)
        logger.debug(f"Status for {job_id}: {outcome.kind}", job_id=job_id)
        return outcome

    def _artifact_url(self, location: str) -> str:
        if urlparse(location).scheme in ("http", "https"):
            return location
        return f"{self.base_url}/{location.lstrip('/')}"

    async def download_artifact(
        self, location: str, destination: Path | None = None
    ) -> Path:
        """Download generated audio to disk.

        Args:
            location: Artifact URL (absolute, or relative to the base URL)
            destination: Target file; defaults to ``settings.download_dir``
                plus the URL's file name

        Returns:
            Path of the written file
        """
        url = self._artifact_url(location)
        if destination is None:
            name = Path(urlparse(url).path).name or "voiceclone-output.audio"
            destination = settings.download_dir / name
        destination.parent.mkdir(parents=True, exist_ok=True)
        partial = destination.with_name(destination.name + ".part")

        try:
            async with self._client.stream(
                "GET", url, headers={"User-Agent": self._get_headers()["User-Agent"]}
            ) as response:
                if response.status_code >= 500:
                    raise TransportError(
                        f"Artifact host unavailable: HTTP {response.status_code}",
                        url=url,
                        status_code=response.status_code,
                    )
                if response.status_code >= 400:
                    raise BackendError(
                        f"Artifact download rejected: HTTP {response.status_code}",
                        status_code=response.status_code,
                        url=url,
                    )
                async with aiofiles.open(partial, "wb") as f:
                    async for chunk in response.aiter_bytes():
                        await f.write(chunk)
            partial.replace(destination)
        except httpx.TransportError as e:
            handle_transport_error(e, url)
        finally:
            # No-op once the rename succeeded
            partial.unlink(missing_ok=True)

        logger.info(f"Saved generated audio to {destination}", url=url)
        return destination

