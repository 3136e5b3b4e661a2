"""Precondition checks that turn draft input into a clone request."""

from __future__ import annotations

from voiceclone.core.config import settings
from voiceclone.core.exceptions import (
    MissingAudioError,
    MissingTextError,
    TextTooLongError,
    UnsupportedLanguageError,
)
from voiceclone.core.models import CloneRequest, EncodedAudio, LanguageCode
from voiceclone.utils.language_mapper import LanguageMapper

_mapper = LanguageMapper(LanguageCode.get_supported_codes())


def resolve_language(language: str | LanguageCode | None) -> LanguageCode:
    """Resolve a language selector, falling back to the configured default.

    Raises:
        UnsupportedLanguageError: If the selector names no supported locale
    """
    if isinstance(language, LanguageCode):
        return language
    selector = language if language and language.strip() else settings.default_language
    tag = _mapper.normalize(selector)
    if tag is None:
        raise UnsupportedLanguageError(
            f"Unsupported language: {selector}",
            field="language",
            language_code=selector,
            supported_languages=LanguageCode.get_supported_codes(),
        )
    return LanguageCode(tag)


def validate(
    draft_audio: EncodedAudio | str | None,
    draft_text: str | None,
    language: str | LanguageCode | None = None,
    model: str | None = None,
) -> CloneRequest:
    """Check submission preconditions and build a request.

    Rules are applied in order and the first failure wins: missing audio,
    missing text, text too long, unsupported language. No I/O happens here.

    Args:
        draft_audio: Encoded reference audio (or a ready payload string)
        draft_text: Text to synthesize
        language: Locale tag or alias; unset means the configured default
        model: Optional model variant; unset means the configured default

    Returns:
        A fully populated CloneRequest

    Raises:
        RequestValidationError: The first rule that fails
    """
    if isinstance(draft_audio, EncodedAudio):
        payload = draft_audio.data_uri
    else:
        payload = draft_audio or ""
    if not payload.strip():
        raise MissingAudioError("Reference audio is required", field="audio")

    text = (draft_text or "").strip()
    if not text:
        raise MissingTextError("Text to synthesize is required", field="text")

    if len(text) > settings.max_text_length:
        raise TextTooLongError(
            f"Text is {len(text)} characters, limit is {settings.max_text_length}",
            field="text",
            text_length=len(text),
            max_length=settings.max_text_length,
        )

    return CloneRequest(
        audio_payload=payload,
        target_text=text,
        language_code=resolve_language(language),
        model_name=model if model is not None else settings.default_model,
    )
