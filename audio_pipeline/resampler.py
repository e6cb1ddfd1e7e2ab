from __future__ import annotations

import logging

import numpy as np
from scipy import signal

from audio_pipeline.models import PCMBuffer, Segment

logger = logging.getLogger(__name__)


def compressed_length(frame_count: int, sample_rate: int, target_rate: int, speedup: float) -> int:
    """Samples needed to hold ``frame_count`` source frames at ``speedup``x playback."""
    return int(frame_count * target_rate / (sample_rate * speedup))


def time_compress(
    segment: Segment,
    target_rate: int = 32000,
    speedup: float = 2.0,
) -> PCMBuffer:
    """Render a segment as mono audio at ``target_rate`` that plays ``speedup`` times faster.

    Only the first channel is kept. The whole window is squeezed into
    ``1 / speedup`` of its real duration, so pitch rises along with tempo.
    """
    if speedup <= 0:
        raise ValueError(f"speedup must be positive, got {speedup}")

    source = segment.buffer.channel(0)
    num_samples = compressed_length(len(source), segment.buffer.sample_rate, target_rate, speedup)
    if num_samples == 0:
        rendered = np.zeros(0, dtype=np.float32)
    else:
        rendered = signal.resample(source.astype(np.float64), num_samples).astype(np.float32)
        np.clip(rendered, -1.0, 1.0, out=rendered)

    logger.debug(
        "Segment %d: %d samples @ %d Hz -> %d samples @ %d Hz",
        segment.index, len(source), segment.buffer.sample_rate, num_samples, target_rate,
    )
    return PCMBuffer(sample_rate=target_rate, samples=rendered)
