"""A source of samples held in memory."""

from __future__ import annotations

from typing import Any, Iterable, Optional

from sonari.samples import SampleFormat
from sonari.source import SizeHint, Source

_NANOS_PER_SECOND = 1_000_000_000


class SamplesBuffer(Source):
    """A list of interleaved samples treated as a source."""

    def __init__(
        self,
        channels: int,
        sample_rate: int,
        data: Iterable[Any],
        sample_format: Optional[SampleFormat] = None,
    ) -> None:
        if channels == 0:
            raise ValueError("channel count must not be zero")
        if sample_rate == 0:
            raise ValueError("sample rate must not be zero")

        self._data = list(data)
        if sample_format is None:
            is_float = any(isinstance(sample, float) for sample in self._data)
            sample_format = SampleFormat.F32 if is_float else SampleFormat.I16
        self._format = sample_format
        self._pos = 0
        self._channels = channels
        self._sample_rate = sample_rate
        duration_ns = _NANOS_PER_SECOND * len(self._data) // sample_rate // channels
        self._duration = duration_ns / _NANOS_PER_SECOND

    def __next__(self) -> Any:
        if self._pos >= len(self._data):
            raise StopIteration
        sample = self._data[self._pos]
        self._pos += 1
        return sample

    def current_frame_len(self) -> Optional[int]:
        return None

    def channels(self) -> int:
        return self._channels

    def sample_rate(self) -> int:
        return self._sample_rate

    def total_duration(self) -> Optional[float]:
        return self._duration

    def sample_format(self) -> SampleFormat:
        return self._format

    def size_hint(self) -> SizeHint:
        """The total number of samples held, as both bounds."""
        return len(self._data), len(self._data)

    def try_seek(self, pos: float) -> None:
        """Jump to ``pos`` seconds, saturating at the end, keeping channel order."""
        if pos < 0:
            raise ValueError("seek position must not be negative")
        current_channel = self._pos % self._channels
        new_pos = int(pos * self._sample_rate * self._channels)
        new_pos = min(new_pos, len(self._data))
        new_pos = -(-new_pos // self._channels) * self._channels
        self._pos = new_pos - current_channel