"""The common interface shared by every stream of audio samples.

Durations and seek positions are expressed as seconds in ``float``.
"""

from __future__ import annotations

import operator
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Iterator, Optional, Tuple

if TYPE_CHECKING:
    from sonari.samples import SampleFormat

SizeHint = Tuple[int, Optional[int]]


class SeekError(Exception):
    """Raised when seeking within a source fails."""


class SeekNotSupported(SeekError):
    """Raised by sources that cannot seek at all."""

    def __init__(self, underlying_source: str) -> None:
        super().__init__(f"seeking is not supported by source: {underlying_source}")
        self.underlying_source = underlying_source


def _size_hint_of(iterator: Any) -> SizeHint:
    """Return the (lower, upper) bound of samples left in ``iterator``."""
    hint = getattr(iterator, "size_hint", None)
    if callable(hint):
        return hint()
    if hasattr(iterator, "__len__") or hasattr(iterator, "__length_hint__"):
        remaining = operator.length_hint(iterator, -1)
        if remaining >= 0:
            return remaining, remaining
    return 0, None


class Source(ABC):
    """An iterator of interleaved samples that knows its own audio layout."""

    def __iter__(self) -> Iterator[Any]:
        return self

    @abstractmethod
    def __next__(self) -> Any:
        """Return the next sample, or raise ``StopIteration``."""

    @abstractmethod
    def current_frame_len(self) -> Optional[int]:
        """Samples left before channels or sample rate may change, or None if unbounded."""

    @abstractmethod
    def channels(self) -> int:
        """Number of interleaved channels."""

    @abstractmethod
    def sample_rate(self) -> int:
        """Frames per second."""

    @abstractmethod
    def total_duration(self) -> Optional[float]:
        """Total length in seconds, or None if unknown."""

    @abstractmethod
    def sample_format(self) -> "SampleFormat":
        """Format of the samples this source yields."""

    def size_hint(self) -> SizeHint:
        """Lower and upper bound of the number of samples still to come."""
        return 0, None

    def try_seek(self, pos: float) -> None:
        """Move playback to ``pos`` seconds; raises ``SeekError`` on failure."""
        raise SeekNotSupported(type(self).__name__)

    def __length_hint__(self) -> int:
        return self.size_hint()[0]