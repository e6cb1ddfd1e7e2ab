from __future__ import annotations

import io
import logging
import subprocess

import numpy as np
import soundfile as sf

from audio_pipeline.models import PCMBuffer

logger = logging.getLogger(__name__)


class DecodeError(ValueError):
    """Raised when bytes are not a recognizable audio stream."""


def decode_audio(data: bytes, fallback_sample_rate: int = 16000) -> PCMBuffer:
    """Decode an in-memory audio file into a PCMBuffer.

    Containers libsndfile understands (wav, flac, ogg, ...) keep their native
    rate and channel layout. Anything else is piped through ffmpeg and comes
    back as mono float32 at ``fallback_sample_rate``.
    """
    if not data:
        raise DecodeError("No audio data")

    try:
        samples, sample_rate = sf.read(io.BytesIO(data), dtype="float32", always_2d=True)
        return PCMBuffer(sample_rate=sample_rate, samples=np.ascontiguousarray(samples.T))
    except (sf.SoundFileError, RuntimeError) as exc:
        logger.debug("libsndfile could not decode %d bytes: %s", len(data), exc)

    pcm = _ffmpeg_decode(data, fallback_sample_rate)
    if pcm.size == 0:
        raise DecodeError("ffmpeg produced no samples")
    return PCMBuffer(sample_rate=fallback_sample_rate, samples=pcm)


def _ffmpeg_decode(data: bytes, sample_rate: int) -> np.ndarray:
    cmd = [
        "ffmpeg",
        "-hide_banner",
        "-loglevel", "error",
        "-i", "pipe:0",
        "-f", "f32le",
        "-ar", str(sample_rate),
        "-ac", "1",
        "pipe:1",
    ]
    try:
        result = subprocess.run(cmd, input=data, capture_output=True, check=True)
    except OSError as exc:
        raise DecodeError(f"Unsupported audio format and ffmpeg could not be run: {exc}") from exc
    except subprocess.CalledProcessError as exc:
        detail = exc.stderr.decode(errors="replace").strip() if exc.stderr else "unknown error"
        raise DecodeError(f"Could not decode audio: {detail}") from exc
    return np.frombuffer(result.stdout, dtype="<f4").astype(np.float32)
