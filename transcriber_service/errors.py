from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from audio_pipeline.models import Job


class TranscriberError(Exception):
    pass


class InvalidCredential(TranscriberError):
    pass


class MissingAudioSource(TranscriberError):
    pass


class NoTranscriptionExtracted(TranscriberError):
    def __init__(self, job: Job):
        super().__init__("No transcription could be extracted from the audio file")
        self.job = job


class MissingTranscript(TranscriberError):
    pass


class MissingInstruction(TranscriberError):
    pass


class ServiceError(TranscriberError):
    """Non-success response from the remote speech/chat service."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"Service error ({status_code}): {message}")
        self.status_code = status_code
        self.message = message
