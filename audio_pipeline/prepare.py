from __future__ import annotations

import logging

from audio_pipeline.decoder import decode_audio
from audio_pipeline.models import AudioSource, EncodedUnit, PCMBuffer, Segment
from audio_pipeline.resampler import time_compress
from audio_pipeline.segmenter import Segmenter
from audio_pipeline.wav import encode_wav
from common.config import TranscriberSettings

logger = logging.getLogger(__name__)


def encode_segment(segment: Segment, settings: TranscriberSettings) -> EncodedUnit:
    """Time-compress and encode one segment; fall back to the plain first channel on failure."""
    try:
        rendered = time_compress(
            segment,
            target_rate=settings.target_sample_rate,
            speedup=settings.speedup,
        )
    except Exception:
        logger.warning("Resampling failed for chunk %d, sending it uncompressed", segment.index, exc_info=True)
        rendered = PCMBuffer(
            sample_rate=segment.buffer.sample_rate,
            samples=segment.buffer.channel(0),
        )
    return EncodedUnit(index=segment.index, data=encode_wav(rendered), duration=rendered.duration)


def prepare_units(source: AudioSource, settings: TranscriberSettings | None = None) -> list[EncodedUnit]:
    """Split a source into compressed WAV units ready for submission.

    If the source cannot be decoded or split at all, the original bytes are
    returned as a single unit of unknown duration.
    """
    settings = settings or TranscriberSettings()
    try:
        buffer = decode_audio(source.data, fallback_sample_rate=settings.ffmpeg_fallback_sample_rate)
        segments = Segmenter(buffer, window_seconds=settings.chunk_duration_s)
        units = [encode_segment(segment, settings) for segment in segments]
    except Exception:
        logger.warning("Audio split failed, using original file", exc_info=True)
        return [
            EncodedUnit(
                index=0,
                data=source.data,
                media_type=source.media_type,
                filename=source.filename,
            )
        ]

    logger.info(
        "Split audio into %d chunks (%gx speed, %.1fs source)",
        len(units), settings.speedup, buffer.duration,
    )
    return units
