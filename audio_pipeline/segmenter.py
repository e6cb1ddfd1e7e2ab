from __future__ import annotations

import math
from typing import Iterator

from audio_pipeline.models import PCMBuffer, Segment


class Segmenter:
    """Fixed-length, gap-free windows over a decoded buffer.

    Iterating twice yields the same segments; nothing is copied until a
    segment is produced. The last window holds whatever samples remain.
    """

    def __init__(self, buffer: PCMBuffer, window_seconds: float = 25.0):
        if window_seconds <= 0:
            raise ValueError(f"window_seconds must be positive, got {window_seconds}")
        self.buffer = buffer
        self.window_seconds = window_seconds
        self.window_samples = max(1, int(round(window_seconds * buffer.sample_rate)))

    def __len__(self) -> int:
        return math.ceil(self.buffer.frame_count / self.window_samples)

    def __iter__(self) -> Iterator[Segment]:
        total = self.buffer.frame_count
        for index in range(len(self)):
            start = index * self.window_samples
            end = min(start + self.window_samples, total)
            yield Segment(
                index=index,
                buffer=PCMBuffer(
                    sample_rate=self.buffer.sample_rate,
                    samples=self.buffer.samples[:, start:end],
                ),
                start=start,
                end=end,
            )
