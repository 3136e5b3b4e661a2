"""Core Pydantic models for clone requests, jobs and backend responses."""

from datetime import datetime
from enum import Enum
from typing import Any, Literal, Optional, Union
import uuid

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from voiceclone.core.exceptions import (
    JobCancelledError,
    JobStateError,
    JobTimedOutError,
    ProtocolError,
    SynthesisFailure,
    VoiceCloneError,
)

DEFAULT_FAILURE_REASON = "Voice synthesis failed"


class LanguageCode(str, Enum):
    """Supported synthesis locales."""

    CHINESE = "zh-CN"
    ENGLISH = "en-US"
    JAPANESE = "ja-JP"
    KOREAN = "ko-KR"

    @classmethod
    def is_valid(cls, code: str) -> bool:
        """Check if a language code is valid."""
        return code in [lang.value for lang in cls]

    @classmethod
    def get_supported_codes(cls) -> list[str]:
        """Get all supported language codes."""
        return [lang.value for lang in cls]


class EncodedAudio(BaseModel):
    """Reference audio in its self-contained transmissible form."""

    model_config = ConfigDict(frozen=True)

    data_uri: str = Field(
        min_length=1,
        description="data:<mime>;base64,<payload> text form of the audio"
    )
    mime_type: str = Field(
        description="MIME type embedded in the data URI"
    )
    size_bytes: int = Field(
        ge=1,
        description="Size of the raw audio in bytes"
    )
    filename: Optional[str] = Field(
        default=None,
        description="Original file name, if known"
    )


class CloneRequest(BaseModel):
    """A validated voice clone submission."""

    audio_payload: str = Field(
        min_length=1,
        description="Encoded reference audio"
    )
    target_text: str = Field(
        description="Text to synthesize, trimmed"
    )
    language_code: LanguageCode = Field(
        default=LanguageCode.CHINESE,
        description="Synthesis locale"
    )
    model_name: Optional[str] = Field(
        default=None,
        description="Synthesis model variant"
    )
    request_id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        description="Local request identifier"
    )

    @field_validator("audio_payload")
    @classmethod
    def validate_audio_payload(cls, v: str) -> str:
        """Audio payload must not be blank."""
        if not v.strip():
            raise ValueError("audio_payload must not be empty")
        return v

    @field_validator("target_text")
    @classmethod
    def validate_target_text(cls, v: str) -> str:
        """Target text is stored trimmed and must not be blank."""
        v = v.strip()
        if not v:
            raise ValueError("target_text must not be empty")
        return v

    @field_validator("model_name")
    @classmethod
    def blank_model_is_unset(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None

    def to_payload(self) -> dict[str, Any]:
        """Build the submission body sent to the backend."""
        payload: dict[str, Any] = {
            "audio": self.audio_payload,
            "text": self.target_text,
            "language": self.language_code.value,
        }
        if self.model_name:
            payload["model"] = self.model_name
        return payload


class JobState(str, Enum):
    """Clone job lifecycle state."""

    SUBMITTED = "submitted"
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset(
    {JobState.SUCCEEDED, JobState.FAILED, JobState.TIMED_OUT, JobState.CANCELLED}
)


class CloneJob(BaseModel):
    """Model for tracking one clone job from submission to terminal state."""

    request_id: str = Field(
        description="Local request identifier"
    )
    job_id: Optional[str] = Field(
        default=None,
        description="Backend task id, present only for deferred jobs"
    )
    state: JobState = Field(
        default=JobState.SUBMITTED,
        description="Current state"
    )
    artifact_location: Optional[str] = Field(
        default=None,
        description="Generated audio reference, set only on success"
    )
    failure_reason: Optional[str] = Field(
        default=None,
        description="Diagnostic message, set only on non-success terminal states"
    )
    error_code: Optional[str] = Field(
        default=None,
        description="Machine-readable failure code"
    )
    poll_count: int = Field(
        default=0,
        ge=0,
        description="Status polls issued for this job"
    )
    history: list[JobState] = Field(
        default_factory=lambda: [JobState.SUBMITTED],
        description="Every state entered, in order"
    )
    created_at: datetime = Field(
        default_factory=datetime.now,
        description="Job creation timestamp"
    )
    updated_at: datetime = Field(
        default_factory=datetime.now,
        description="Last update timestamp"
    )

    @property
    def is_terminal(self) -> bool:
        """Whether the job reached a state it never leaves."""
        return self.state in TERMINAL_STATES

    def _transition(self, target: JobState, allowed_from: set[JobState]) -> None:
        if self.state not in allowed_from:
            raise JobStateError(
                f"Cannot move job from {self.state.value} to {target.value}",
                current_state=self.state.value,
                target_state=target.value,
            )
        self.state = target
        self.history.append(target)
        self.updated_at = datetime.now()

    def mark_pending(self, job_id: Optional[str] = None) -> None:
        """Mark job as deferred by the backend (or record another pending tick)."""
        self._transition(JobState.PENDING, {JobState.SUBMITTED, JobState.PENDING})
        if job_id:
            self.job_id = job_id

    def mark_succeeded(self, artifact_location: str) -> None:
        """Mark job as completed with the generated audio reference."""
        self._transition(JobState.SUCCEEDED, {JobState.SUBMITTED, JobState.PENDING})
        self.artifact_location = artifact_location

    def mark_failed(
        self, reason: str, error_code: str = SynthesisFailure.default_code
    ) -> None:
        """Mark job as failed with a diagnostic."""
        self._transition(JobState.FAILED, {JobState.SUBMITTED, JobState.PENDING})
        self.failure_reason = reason
        self.error_code = error_code

    def mark_timed_out(self, reason: str) -> None:
        """Mark job as abandoned after the polling budget ran out."""
        self._transition(JobState.TIMED_OUT, {JobState.PENDING})
        self.failure_reason = reason
        self.error_code = JobTimedOutError.default_code

    def mark_cancelled(self, reason: str = "Cancelled by caller") -> None:
        """Mark job as cancelled by the caller."""
        self._transition(JobState.CANCELLED, {JobState.SUBMITTED, JobState.PENDING})
        self.failure_reason = reason
        self.error_code = JobCancelledError.default_code


class BackendStatus(str, Enum):
    """Status values reported by the synthesis backend."""

    SUCCESS = "success"
    PROCESSING = "processing"
    FAILED = "failed"


class SynthesisSucceeded(BaseModel):
    """Backend finished and produced audio."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["succeeded"] = "succeeded"
    artifact_location: str


class SynthesisPending(BaseModel):
    """Backend accepted the job and is still working on it."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["pending"] = "pending"
    job_id: str


class SynthesisFailed(BaseModel):
    """Backend reported that synthesis failed."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["failed"] = "failed"
    reason: str


BackendOutcome = Union[SynthesisSucceeded, SynthesisPending, SynthesisFailed]


class CloneResponse(BaseModel):
    """Wire model of a submission or status response."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    audio_url: Optional[str] = Field(default=None, alias="audioUrl")
    task_id: Optional[str] = Field(default=None, alias="taskId")
    status: BackendStatus
    error_message: Optional[str] = Field(default=None, alias="errorMessage")

    @field_validator("task_id", mode="before")
    @classmethod
    def coerce_numeric_task_id(cls, v: Any) -> Any:
        # Some backends emit numeric ids
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    def to_outcome(self, job_id: Optional[str] = None) -> BackendOutcome:
        """Convert to a tagged outcome, rejecting illegal field combinations.

        Args:
            job_id: Id of the job being polled, used when a status response
                omits ``taskId``

        Raises:
            ProtocolError: If fields required by the declared status are missing
        """
        if self.status is BackendStatus.SUCCESS:
            if not self.audio_url or not self.audio_url.strip():
                raise ProtocolError("Backend reported success without an audioUrl")
            return SynthesisSucceeded(artifact_location=self.audio_url.strip())

        if self.status is BackendStatus.PROCESSING:
            pending_id = self.task_id or job_id
            if not pending_id:
                raise ProtocolError("Backend reported processing without a taskId")
            return SynthesisPending(job_id=pending_id)

        reason = self.error_message
        if not reason or not reason.strip():
            reason = DEFAULT_FAILURE_REASON
        return SynthesisFailed(reason=reason)


class OutcomeState(str, Enum):
    """Terminal event states delivered to the result sink."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timedOut"
    CANCELLED = "cancelled"


_OUTCOME_BY_JOB_STATE = {
    JobState.SUCCEEDED: OutcomeState.SUCCEEDED,
    JobState.FAILED: OutcomeState.FAILED,
    JobState.TIMED_OUT: OutcomeState.TIMED_OUT,
    JobState.CANCELLED: OutcomeState.CANCELLED,
}


class JobOutcome(BaseModel):
    """The single terminal event reported for a submitted job."""

    state: OutcomeState = Field(
        description="Terminal state"
    )
    artifact_location: Optional[str] = Field(
        default=None,
        description="Generated audio reference on success"
    )
    reason: Optional[str] = Field(
        default=None,
        description="Diagnostic on any non-success state"
    )
    error_code: Optional[str] = Field(
        default=None,
        description="Machine-readable failure code"
    )
    job: Optional[CloneJob] = Field(
        default=None,
        description="Final job record, absent if nothing was submitted"
    )

    @model_validator(mode="after")
    def validate_variant(self) -> "JobOutcome":
        """Success carries an artifact; everything else carries a reason."""
        if self.state is OutcomeState.SUCCEEDED:
            if not self.artifact_location:
                raise ValueError("succeeded outcome requires artifact_location")
        elif not self.reason:
            raise ValueError(f"{self.state.value} outcome requires a reason")
        return self

    @property
    def succeeded(self) -> bool:
        return self.state is OutcomeState.SUCCEEDED

    @classmethod
    def from_job(cls, job: CloneJob) -> "JobOutcome":
        """Build the terminal event for a job that reached a terminal state."""
        if not job.is_terminal:
            raise JobStateError(
                "Outcome requested for a job that is still running",
                current_state=job.state.value,
            )
        return cls(
            state=_OUTCOME_BY_JOB_STATE[job.state],
            artifact_location=job.artifact_location,
            reason=job.failure_reason,
            error_code=job.error_code,
            job=job,
        )

    @classmethod
    def from_error(
        cls, exc: VoiceCloneError, job: Optional[CloneJob] = None
    ) -> "JobOutcome":
        """Build a failed event for an error raised outside the job record."""
        return cls(
            state=OutcomeState.FAILED,
            reason=exc.message,
            error_code=exc.error_code,
            job=job,
        )

    def to_event(self) -> dict[str, Any]:
        """Wire form of the event: state plus artifact location or reason."""
        if self.succeeded:
            return {"state": self.state.value, "artifactLocation": self.artifact_location}
        return {"state": self.state.value, "reason": self.reason}

    def raise_for_failure(self) -> None:
        """Raise the exception matching a non-success outcome."""
        if self.succeeded:
            return
        job_id = self.job.job_id if self.job else None
        reason = self.reason or DEFAULT_FAILURE_REASON
        if self.state is OutcomeState.TIMED_OUT:
            raise JobTimedOutError(reason, job_id=job_id)
        if self.state is OutcomeState.CANCELLED:
            raise JobCancelledError(reason, job_id=job_id)
        if self.error_code == SynthesisFailure.default_code:
            raise SynthesisFailure(reason, job_id=job_id)
        raise VoiceCloneError(reason, error_code=self.error_code)
