"""Conversion between sample rates by linear interpolation."""

from __future__ import annotations

import math
from collections import deque
from itertools import islice
from typing import Any, Iterable, Iterator, List, Optional

from sonari.samples import SampleFormat
from sonari.source import SizeHint, _size_hint_of

_NO_SAMPLE = object()


class SampleRateConverter:
    """Iterator that resamples interleaved frames from one rate to another.

    Chunks of ``from_rate`` input frames (after reduction by their greatest
    common divisor) become chunks of ``to_rate`` output frames, each output
    frame being interpolated between two neighbouring input frames.
    """

    def __init__(
        self,
        input: Iterable[Any],
        from_rate: int,
        to_rate: int,
        channels: int,
        sample_format: Optional[SampleFormat] = None,
    ) -> None:
        if from_rate < 1:
            raise ValueError("source sample rate must be at least 1")
        if to_rate < 1:
            raise ValueError("target sample rate must be at least 1")
        if channels < 1:
            raise ValueError("channel count must be at least 1")

        self._input = iter(input)
        if sample_format is None:
            declared = getattr(input, "sample_format", None)
            if callable(declared):
                sample_format = declared()
        self._format = sample_format

        divisor = math.gcd(from_rate, to_rate)
        if from_rate == to_rate:
            current: List[Any] = []
            upcoming: List[Any] = []
        else:
            current = list(islice(self._input, channels))
            upcoming = list(islice(self._input, channels))

        self._from = from_rate // divisor
        self._to = to_rate // divisor
        self._channels = channels
        self._current_frame = current
        self._next_frame = upcoming
        self._current_frame_pos_in_chunk = 0
        self._next_output_frame_pos_in_chunk = 0
        self._output_buffer: deque = deque()

    def __iter__(self) -> Iterator[Any]:
        return self

    def _lerp(self, first: Any, second: Any, numerator: int, denominator: int) -> Any:
        sample_format = self._format
        if sample_format is None:
            if isinstance(first, float) or isinstance(second, float):
                sample_format = SampleFormat.F32
            else:
                sample_format = SampleFormat.I16
        return sample_format.lerp(first, second, numerator, denominator)

    def _next_input_frame(self) -> None:
        self._current_frame_pos_in_chunk += 1
        self._current_frame = self._next_frame
        self._next_frame = list(islice(self._input, self._channels))

    def __next__(self) -> Any:
        if self._from == self._to:
            return next(self._input)

        if self._output_buffer:
            return self._output_buffer.popleft()

        if self._next_output_frame_pos_in_chunk == self._to:
            self._next_output_frame_pos_in_chunk = 0
            self._next_input_frame()
            while self._current_frame_pos_in_chunk != self._from:
                self._next_input_frame()
            self._current_frame_pos_in_chunk = 0
        else:
            required_left = (self._from * self._next_output_frame_pos_in_chunk // self._to) % self._from
            while self._current_frame_pos_in_chunk != required_left:
                self._next_input_frame()

        result = _NO_SAMPLE
        numerator = (self._from * self._next_output_frame_pos_in_chunk) % self._to
        for offset, (current, upcoming) in enumerate(zip(self._current_frame, self._next_frame)):
            sample = self._lerp(current, upcoming, numerator, self._to)
            if offset == 0:
                result = sample
            else:
                self._output_buffer.append(sample)

        self._next_output_frame_pos_in_chunk += 1

        if result is not _NO_SAMPLE:
            return result
        if self._current_frame:
            first, *rest = self._current_frame
            self._output_buffer = deque(rest)
            self._current_frame = []
            return first
        raise StopIteration

    def size_hint(self) -> SizeHint:
        """Bounds of the number of output samples still to come."""
        if self._from == self._to:
            return _size_hint_of(self._input)

        def apply(samples: int) -> int:
            after_chunk = samples
            if self._current_frame_pos_in_chunk == self._from - 1:
                after_chunk += len(self._next_frame)
            unread = max(0, self._from - (self._current_frame_pos_in_chunk + 2)) * self._channels
            after_chunk = max(0, after_chunk - unread)
            after_chunk = after_chunk * self._to // self._from
            current_chunk = (self._to - self._next_output_frame_pos_in_chunk) * self._channels
            return current_chunk + after_chunk + len(self._output_buffer)

        low, high = _size_hint_of(self._input)
        return apply(low), None if high is None else apply(high)

    def __len__(self) -> int:
        low, high = self.size_hint()
        if high != low:
            raise TypeError("the number of remaining samples is not known exactly")
        return low

    def __length_hint__(self) -> int:
        return self.size_hint()[0]