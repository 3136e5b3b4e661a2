"""Custom exceptions for the voice clone client."""

from typing import Any, Dict, Optional, Type


class VoiceCloneError(Exception):
    """Base exception for all voice clone client errors."""

    default_code = "VOICE_CLONE_ERROR"
    retryable = False

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code
        self.details = details or {}
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "cause": str(self.cause) if self.cause else None,
        }

    @classmethod
    def from_exception(
        cls: Type["VoiceCloneError"],
        exc: Exception,
        message: Optional[str] = None,
        error_code: Optional[str] = None,
        **details: Any,
    ) -> "VoiceCloneError":
        """Create a VoiceCloneError from another exception."""
        return cls(
            message=message or str(exc),
            error_code=error_code,
            details=details,
            cause=exc,
        )

    def __str__(self) -> str:
        """String representation of the exception."""
        base = f"{self.error_code}: {self.message}"
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            base += f" ({details_str})"
        return base


class RequestValidationError(VoiceCloneError):
    """Raised when a draft submission fails precondition checks."""

    default_code = "INVALID_REQUEST"

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {})
        if field:
            details["field"] = field
        super().__init__(message, details=details, **kwargs)


class MissingAudioError(RequestValidationError):
    """No reference audio was supplied."""

    default_code = "MISSING_AUDIO"


class MissingTextError(RequestValidationError):
    """Target text is empty after trimming."""

    default_code = "MISSING_TEXT"


class TextTooLongError(RequestValidationError):
    """Target text exceeds the configured maximum length."""

    default_code = "TEXT_TOO_LONG"

    def __init__(
        self,
        message: str,
        text_length: Optional[int] = None,
        max_length: Optional[int] = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {})
        if text_length is not None:
            details["text_length"] = text_length
        if max_length is not None:
            details["max_length"] = max_length
        super().__init__(message, details=details, **kwargs)


class UnsupportedLanguageError(RequestValidationError):
    """Raised when an unsupported language is requested."""

    default_code = "UNSUPPORTED_LANGUAGE"

    def __init__(
        self,
        message: str,
        language_code: Optional[str] = None,
        supported_languages: Optional[list[str]] = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {})
        if language_code:
            details["language_code"] = language_code
        if supported_languages:
            details["supported_languages"] = supported_languages
        super().__init__(message, details=details, **kwargs)


class EncodingError(VoiceCloneError):
    """Raised when reference audio cannot be turned into a payload."""

    default_code = "ENCODING_ERROR"

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        size_bytes: Optional[int] = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {})
        if source:
            details["source"] = source
        if size_bytes is not None:
            details["size_bytes"] = size_bytes
        super().__init__(message, details=details, **kwargs)


class EncodingTooLargeError(EncodingError):
    """Reference audio exceeds the configured size limit."""

    default_code = "ENCODING_TOO_LARGE"

    def __init__(
        self,
        message: str,
        limit_bytes: Optional[int] = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {})
        if limit_bytes is not None:
            details["limit_bytes"] = limit_bytes
        super().__init__(message, details=details, **kwargs)


class EncodingFailedError(EncodingError):
    """Reading the reference audio failed."""

    default_code = "ENCODING_FAILED"


class ProtocolError(VoiceCloneError):
    """The backend response violates the expected schema."""

    default_code = "PROTOCOL_ERROR"

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        body_sample: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {})
        if url:
            details["url"] = url
        if body_sample:
            # Only store a sample for debugging
            details["body_sample"] = (
                body_sample[:200] + "..." if len(body_sample) > 200 else body_sample
            )
        super().__init__(message, details=details, **kwargs)


class TransportError(VoiceCloneError):
    """The backend could not be reached."""

    default_code = "TRANSPORT_ERROR"
    retryable = True

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {})
        if url:
            details["url"] = url
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, details=details, **kwargs)


class BackendError(VoiceCloneError):
    """The backend rejected the request."""

    default_code = "BACKEND_REJECTED"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        url: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {})
        if status_code is not None:
            details["status_code"] = status_code
        if url:
            details["url"] = url
        super().__init__(message, details=details, **kwargs)
        self.status_code = status_code


class SynthesisFailure(VoiceCloneError):
    """The backend reported that synthesis failed."""

    default_code = "SYNTHESIS_FAILED"

    def __init__(
        self,
        message: str,
        job_id: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {})
        if job_id:
            details["job_id"] = job_id
        super().__init__(message, details=details, **kwargs)


class JobAbandonedError(VoiceCloneError):
    """The client stopped waiting for a job; the backend never reported failure."""

    default_code = "JOB_ABANDONED"

    def __init__(
        self,
        message: str,
        job_id: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {})
        if job_id:
            details["job_id"] = job_id
        super().__init__(message, details=details, **kwargs)


class JobTimedOutError(JobAbandonedError):
    """Polling gave up before the backend reached a terminal status."""

    default_code = "JOB_TIMED_OUT"


class JobCancelledError(JobAbandonedError):
    """The caller cancelled the job."""

    default_code = "JOB_CANCELLED"


class JobStateError(VoiceCloneError):
    """Raised on an illegal clone job state transition."""

    default_code = "INVALID_JOB_TRANSITION"

    def __init__(
        self,
        message: str,
        current_state: Optional[str] = None,
        target_state: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {})
        if current_state:
            details["current_state"] = current_state
        if target_state:
            details["target_state"] = target_state
        super().__init__(message, details=details, **kwargs)


# Helper functions for common error scenarios
def handle_encoding_error(exc: Exception, source: str) -> None:
    """Handle audio read errors consistently."""
    raise EncodingFailedError.from_exception(
        exc,
        message=f"Failed to read reference audio: {source}",
        source=source,
    )


def handle_transport_error(exc: Exception, url: str) -> None:
    """Handle connectivity errors consistently."""
    raise TransportError.from_exception(
        exc,
        message=f"Backend unreachable ({type(exc).__name__}): {exc}",
        url=url,
    )
