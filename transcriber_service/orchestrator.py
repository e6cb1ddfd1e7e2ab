"""Chunked transcription job: validate, split, submit each unit, aggregate.

Per-unit problems (undecodable unit, too short, service or transport error)
become a ``UnitResult`` status and never abort the job. The only fatal
outcomes are a bad credential, a missing source, and an empty transcript.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Protocol

from audio_pipeline.decoder import DecodeError, decode_audio
from audio_pipeline.models import AudioSource, EncodedUnit, Job, UnitResult
from audio_pipeline.prepare import prepare_units
from common.config import TranscriberSettings
from common.schemas import UnitStatus
from transcriber_service.errors import (
    InvalidCredential,
    MissingAudioSource,
    MissingInstruction,
    MissingTranscript,
    NoTranscriptionExtracted,
)
from transcriber_service.openai_client import OpenAIClient
from transcriber_service.prompts import build_transform_prompt

logger = logging.getLogger(__name__)


class TranscriptionCapability(Protocol):
    async def transcribe(self, unit: EncodedUnit, language: str) -> str: ...


class TransformationCapability(Protocol):
    async def chat_completion(self, prompt: str) -> str: ...


def validate_credential(credential: Optional[str], prefix: str = "sk-") -> str:
    """Return the stripped credential or raise InvalidCredential."""
    if not credential or not credential.strip():
        raise InvalidCredential("API key not set. Please configure an OpenAI API key.")
    credential = credential.strip()
    if not credential.startswith(prefix):
        raise InvalidCredential(f"Invalid API key format. Should start with {prefix}")
    return credential


async def process_unit(
    unit: EncodedUnit,
    capability: TranscriptionCapability,
    total: int,
    language: str = "pt",
    min_duration_s: float = 0.1,
) -> UnitResult:
    logger.info("Transcribing chunk %d/%d...", unit.index + 1, total)

    duration = unit.duration
    if duration is None:
        try:
            duration = (await asyncio.to_thread(decode_audio, unit.data)).duration
        except DecodeError:
            logger.warning("Could not decode chunk %d, skipping...", unit.index)
            return UnitResult(index=unit.index, status=UnitStatus.skipped)

    if duration < min_duration_s:
        logger.warning("Chunk %d too short (%.3fs), skipping...", unit.index, duration)
        return UnitResult(index=unit.index, status=UnitStatus.skipped)

    try:
        text = await capability.transcribe(unit, language)
    except Exception as exc:
        logger.warning("Chunk %d transcription error (non-fatal): %s", unit.index, exc)
        return UnitResult(index=unit.index, status=UnitStatus.failed)

    text = text or ""
    if not text.strip():
        return UnitResult(index=unit.index, status=UnitStatus.empty)
    return UnitResult(index=unit.index, status=UnitStatus.ok, text=text)


async def run_units(
    units: list[EncodedUnit],
    capability: TranscriptionCapability,
    language: str = "pt",
    min_duration_s: float = 0.1,
    max_concurrency: int = 1,
) -> Job:
    """Process every unit once and fold the outcomes into a Job ordered by index."""
    total = len(units)
    if max_concurrency <= 1:
        results = []
        for unit in units:
            results.append(await process_unit(unit, capability, total, language, min_duration_s))
        return Job.from_results(results)

    semaphore = asyncio.Semaphore(max_concurrency)

    async def _bounded(unit: EncodedUnit) -> UnitResult:
        async with semaphore:
            return await process_unit(unit, capability, total, language, min_duration_s)

    results = await asyncio.gather(*(_bounded(unit) for unit in units))
    return Job.from_results(list(results))


async def transcribe(
    source: Optional[AudioSource],
    credential: Optional[str],
    capability: Optional[TranscriptionCapability] = None,
    settings: Optional[TranscriberSettings] = None,
) -> Job:
    """Transcribe an arbitrary-length recording into one aggregated transcript.

    Raises InvalidCredential or MissingAudioSource before any unit is touched,
    and NoTranscriptionExtracted when no unit produced text.
    """
    settings = settings or TranscriberSettings()
    credential = validate_credential(credential, settings.credential_prefix)
    if source is None or not source.data:
        raise MissingAudioSource("No audio file provided.")

    capability = capability or OpenAIClient(credential, settings)

    logger.info("Original file size: %.2fMB", source.size_mb)
    units = await asyncio.to_thread(prepare_units, source, settings)
    logger.info("Total chunks to process: %d", len(units))

    job = await run_units(
        units,
        capability,
        language=settings.language,
        min_duration_s=settings.min_unit_duration_s,
        max_concurrency=settings.max_concurrent_units,
    )

    if job.failure_count > 0:
        logger.warning(
            "%d chunks failed/skipped, but got %d successful chunks",
            job.failure_count, job.success_count,
        )
    if not job.transcript:
        raise NoTranscriptionExtracted(job)
    return job


async def transform(
    transcript: Optional[str],
    instruction: Optional[str],
    credential: Optional[str],
    capability: Optional[TransformationCapability] = None,
    settings: Optional[TranscriberSettings] = None,
) -> str:
    """Apply a free-form instruction to a transcript with one chat-completion call."""
    settings = settings or TranscriberSettings()
    credential = validate_credential(credential, settings.credential_prefix)
    if not transcript or not transcript.strip():
        raise MissingTranscript("No transcription available. Please transcribe audio first.")
    if not instruction or not instruction.strip():
        raise MissingInstruction("No prompt provided for transformation.")

    capability = capability or OpenAIClient(credential, settings)
    return await capability.chat_completion(build_transform_prompt(instruction, transcript))
