"""Voice clone submission and job resolution."""

from __future__ import annotations

from .client import VoiceCloneClient
from .encoder import decode_data_uri, encode_audio
from .jobs import CloneJobHandle, CloneOrchestrator
from .resolver import JobResolver, StatusSource
from .validator import validate

__all__ = [
    "CloneJobHandle",
    "CloneOrchestrator",
    "JobResolver",
    "StatusSource",
    "VoiceCloneClient",
    "decode_data_uri",
    "encode_audio",
    "validate",
]
