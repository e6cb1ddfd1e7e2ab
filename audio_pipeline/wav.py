"""RIFF/WAVE writer for 16-bit PCM."""

from __future__ import annotations

import struct

import numpy as np

from audio_pipeline.models import PCMBuffer

HEADER_SIZE = 44
BITS_PER_SAMPLE = 16
PCM_FORMAT = 1

_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")


def wav_header(channels: int, sample_rate: int, data_length: int) -> bytes:
    block_align = channels * BITS_PER_SAMPLE // 8
    return _HEADER.pack(
        b"RIFF",
        36 + data_length,
        b"WAVE",
        b"fmt ",
        16,
        PCM_FORMAT,
        channels,
        sample_rate,
        sample_rate * block_align,
        block_align,
        BITS_PER_SAMPLE,
        b"data",
        data_length,
    )


def quantize(samples: np.ndarray) -> np.ndarray:
    """Map floats to int16: clamp to [-1, 1], scale negatives by 32768 and the rest by 32767."""
    clipped = np.clip(samples.astype(np.float64), -1.0, 1.0)
    scaled = np.where(clipped < 0, clipped * 32768.0, clipped * 32767.0)
    # truncate toward zero
    return scaled.astype("<i2")


def encode_wav(buffer: PCMBuffer) -> bytes:
    """Serialize a PCMBuffer as a 44-byte header followed by interleaved samples."""
    interleaved = quantize(buffer.samples.T.reshape(-1))
    payload = interleaved.tobytes()
    return wav_header(buffer.channels, buffer.sample_rate, len(payload)) + payload
