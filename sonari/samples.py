"""Sample formats and conversion between them."""

from __future__ import annotations

import enum
import math
from typing import Any, Iterable, Iterator, Union

from sonari.source import SizeHint, _size_hint_of

Number = Union[int, float]

_I16_MIN, _I16_MAX = -32768, 32767
_U16_MIN, _U16_MAX = 0, 65535
_U16_OFFSET = 32768
_F32_SCALE = 32768.0


def _trunc_div(numerator: int, denominator: int) -> int:
    quotient = abs(numerator) // abs(denominator)
    return -quotient if (numerator < 0) != (denominator < 0) else quotient


def _wrap(value: int, low: int, high: int) -> int:
    span = high - low + 1
    return (value - low) % span + low


def _saturating_cast(value: float, low: int, high: int) -> int:
    if math.isnan(value):
        return 0
    if value <= low:
        return low
    if value >= high:
        return high
    return int(value)


class SampleFormat(enum.Enum):
    """The data type of a single sample."""

    I16 = "i16"
    U16 = "u16"
    F32 = "f32"

    def _bounds(self) -> tuple:
        return _I16_MIN, _I16_MAX if self is SampleFormat.I16 else _U16_MAX

    def _int_bounds(self) -> tuple:
        if self is SampleFormat.I16:
            return _I16_MIN, _I16_MAX
        return _U16_MIN, _U16_MAX

    def lerp(self, first: Number, second: Number, numerator: int, denominator: int) -> Number:
        """Interpolate linearly from ``first`` towards ``second`` by ``numerator / denominator``."""
        if self is SampleFormat.F32:
            return first + (second - first) * numerator / denominator
        low, high = self._int_bounds()
        value = first + _trunc_div((second - first) * numerator, denominator)
        return _wrap(value, low, high)

    def amplify(self, value: Number, factor: float) -> Number:
        """Multiply ``value`` by ``factor``."""
        if self is SampleFormat.F32:
            return value * factor
        low, high = self._int_bounds()
        return _saturating_cast(float(value) * factor, low, high)

    def saturating_add(self, first: Number, second: Number) -> Number:
        """Add two samples, clamping integer results to the format's range."""
        if self is SampleFormat.F32:
            return first + second
        low, high = self._int_bounds()
        return min(max(first + second, low), high)

    def zero_value(self) -> Number:
        """The value that stands for silence."""
        if self is SampleFormat.U16:
            return _U16_OFFSET
        if self is SampleFormat.I16:
            return 0
        return 0.0


def convert_sample(value: Number, source_format: SampleFormat, target_format: SampleFormat) -> Number:
    """Convert a single sample from one format to another."""
    if source_format is target_format:
        return value
    if source_format is SampleFormat.F32:
        signed = _saturating_cast(value * _F32_SCALE, _I16_MIN, _I16_MAX)
    elif source_format is SampleFormat.U16:
        signed = value - _U16_OFFSET
    else:
        signed = value

    if target_format is SampleFormat.F32:
        return signed / _F32_SCALE
    if target_format is SampleFormat.U16:
        return signed + _U16_OFFSET
    return signed


class DataConverter:
    """Iterator that converts every sample of ``input`` to another format."""

    def __init__(self, input: Iterable[Any], source_format: SampleFormat, target_format: SampleFormat) -> None:
        self._input = iter(input)
        self._source_format = source_format
        self._target_format = target_format

    def __iter__(self) -> Iterator[Any]:
        return self

    def __next__(self) -> Number:
        return convert_sample(next(self._input), self._source_format, self._target_format)

    def size_hint(self) -> SizeHint:
        """Same bounds as the wrapped iterator."""
        return _size_hint_of(self._input)

    def __length_hint__(self) -> int:
        return self.size_hint()[0]