"""Internal models for the chunked transcription pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from common.schemas import UnitStatus


@dataclass(frozen=True)
class AudioSource:
    data: bytes
    media_type: str = "application/octet-stream"
    filename: str = "audio"

    @property
    def size_mb(self) -> float:
        return len(self.data) / 1024 / 1024


@dataclass
class PCMBuffer:
    """Decoded audio: ``samples`` has shape (channels, frames), float32 in [-1, 1]."""

    sample_rate: int
    samples: np.ndarray

    def __post_init__(self) -> None:
        if self.sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {self.sample_rate}")
        if self.samples.ndim == 1:
            self.samples = self.samples[np.newaxis, :]
        if self.samples.ndim != 2 or self.samples.shape[0] < 1:
            raise ValueError(f"samples must be (channels, frames), got shape {self.samples.shape}")

    @property
    def channels(self) -> int:
        return self.samples.shape[0]

    @property
    def frame_count(self) -> int:
        return self.samples.shape[1]

    @property
    def duration(self) -> float:
        return self.frame_count / self.sample_rate

    def channel(self, index: int) -> np.ndarray:
        return self.samples[index]


@dataclass
class Segment:
    index: int
    buffer: PCMBuffer
    start: int
    end: int

    @property
    def duration(self) -> float:
        return self.buffer.duration


@dataclass
class EncodedUnit:
    index: int
    data: bytes
    media_type: str = "audio/wav"
    # None when the unit is the untouched source and its length is unknown
    duration: Optional[float] = None
    filename: str = ""

    def __post_init__(self) -> None:
        if not self.filename:
            self.filename = f"audio_{self.index}.wav"


@dataclass
class UnitResult:
    index: int
    status: UnitStatus
    text: str = ""


@dataclass
class Job:
    results: list[UnitResult] = field(default_factory=list)

    @classmethod
    def from_results(cls, results: list[UnitResult]) -> Job:
        return cls(results=sorted(results, key=lambda r: r.index))

    @property
    def transcript(self) -> str:
        return " ".join(r.text for r in self.results if r.status is UnitStatus.ok).strip()

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.status is UnitStatus.ok)

    @property
    def failure_count(self) -> int:
        return len(self.results) - self.success_count
