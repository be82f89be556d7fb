"""Conversion between channel counts."""

from __future__ import annotations

from typing import Any, Iterable, Iterator, Optional

from sonari.source import SizeHint, _size_hint_of

_EXHAUSTED = object()


class ChannelCountConverter:
    """Iterator that turns interleaved frames of one channel count into another.

    Extra input channels are dropped. When adding channels, a mono input is
    duplicated into the second channel and the rest are filled with silence.
    Silence is taken from the input's ``sample_format()`` when it has one,
    otherwise it is zero of the sample's own type.
    """

    def __init__(self, input: Iterable[Any], source_channels: int, target_channels: int) -> None:
        if source_channels < 1:
            raise ValueError("source channel count must be at least 1")
        if target_channels < 1:
            raise ValueError("target channel count must be at least 1")
        self._input = iter(input)
        self._from = source_channels
        self._to = target_channels
        self._sample_repeat: Optional[Any] = None
        self._next_output_sample_pos = 0

    def __iter__(self) -> Iterator[Any]:
        return self

    def _equilibrium(self) -> Any:
        sample_format = getattr(self._input, "sample_format", None)
        if callable(sample_format):
            return sample_format().zero_value()
        return type(self._sample_repeat)(0)

    def _pull(self) -> Any:
        return next(self._input, _EXHAUSTED)

    def __next__(self) -> Any:
        pos = self._next_output_sample_pos
        if pos == 0:
            result = self._pull()
            self._sample_repeat = None if result is _EXHAUSTED else result
        elif pos < self._from:
            result = self._pull()
        elif pos == 1:
            result = self._sample_repeat
        else:
            result = self._equilibrium()

        if result is not _EXHAUSTED:
            self._next_output_sample_pos += 1

        if self._next_output_sample_pos == self._to:
            self._next_output_sample_pos = 0
            for _ in range(self._to, self._from):
                self._pull()

        if result is _EXHAUSTED:
            raise StopIteration
        return result

    def size_hint(self) -> SizeHint:
        """Bounds of the number of output samples still to come."""
        low, high = _size_hint_of(self._input)
        consumed = min(self._from, self._next_output_sample_pos)

        def calculate(size: int) -> int:
            return (size + consumed) // self._from * self._to - self._next_output_sample_pos

        return calculate(low), None if high is None else calculate(high)

    def __len__(self) -> int:
        low, high = self.size_hint()
        if high != low:
            raise TypeError("the number of remaining samples is not known exactly")
        return low

    def __length_hint__(self) -> int:
        return self.size_hint()[0]