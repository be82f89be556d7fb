"""A queue that plays sources one after the other."""

from __future__ import annotations

import threading
from typing import Any, List, Optional, Tuple

from sonari.samples import SampleFormat
from sonari.source import SizeHint, Source, _size_hint_of

THRESHOLD = 512
"""Length of the silence played, and the frame length reported when nothing better is known."""


class _Empty(Source):
    """A source that yields nothing."""

    def __init__(self, sample_format: SampleFormat) -> None:
        self._format = sample_format

    def __next__(self) -> Any:
        raise StopIteration

    def current_frame_len(self) -> Optional[int]:
        return None

    def channels(self) -> int:
        return 1

    def sample_rate(self) -> int:
        return 48000

    def total_duration(self) -> Optional[float]:
        return 0.0

    def sample_format(self) -> SampleFormat:
        return self._format

    def size_hint(self) -> SizeHint:
        return 0, 0

    def try_seek(self, pos: float) -> None:
        return None


class _Zero(Source):
    """A fixed number of silent samples."""

    def __init__(self, channels: int, sample_rate: int, num_samples: int, sample_format: SampleFormat) -> None:
        self._channels = channels
        self._sample_rate = sample_rate
        self._remaining = num_samples
        self._format = sample_format

    def __next__(self) -> Any:
        if self._remaining <= 0:
            raise StopIteration
        self._remaining -= 1
        return self._format.zero_value()

    def current_frame_len(self) -> Optional[int]:
        return self._remaining

    def channels(self) -> int:
        return self._channels

    def sample_rate(self) -> int:
        return self._sample_rate

    def total_duration(self) -> Optional[float]:
        return None

    def sample_format(self) -> SampleFormat:
        return self._format

    def size_hint(self) -> SizeHint:
        return self._remaining, self._remaining

    def try_seek(self, pos: float) -> None:
        return None


_Entry = Tuple[Source, Optional[threading.Event]]


class SourcesQueueInput:
    """The side of a queue that sources are added to."""

    def __init__(self, keep_alive_if_empty: bool) -> None:
        self._lock = threading.Lock()
        self._next_sounds: List[_Entry] = []
        self._keep_alive_if_empty = keep_alive_if_empty

    def append(self, source: Source) -> None:
        """Add ``source`` to the end of the queue."""
        with self._lock:
            self._next_sounds.append((source, None))

    def append_with_signal(self, source: Source) -> threading.Event:
        """Add ``source`` to the end of the queue; the returned event is set once it has finished."""
        done = threading.Event()
        with self._lock:
            self._next_sounds.append((source, done))
        return done

    def set_keep_alive_if_empty(self, keep_alive_if_empty: bool) -> None:
        """Choose whether the queue plays silence instead of ending when it runs dry."""
        self._keep_alive_if_empty = keep_alive_if_empty

    def clear(self) -> int:
        """Remove every queued source and return how many there were."""
        with self._lock:
            count = len(self._next_sounds)
            self._next_sounds.clear()
        return count

    @property
    def keep_alive_if_empty(self) -> bool:
        return self._keep_alive_if_empty

    def _has_next(self) -> bool:
        with self._lock:
            return bool(self._next_sounds)

    def _pop_next(self) -> Optional[_Entry]:
        with self._lock:
            if not self._next_sounds:
                return None
            return self._next_sounds.pop(0)


class SourcesQueueOutput(Source):
    """The side of a queue that plays its sources in order."""

    def __init__(self, input: SourcesQueueInput, sample_format: SampleFormat) -> None:
        self._input = input
        self._format = sample_format
        self._current: Source = _Empty(sample_format)
        self._signal_after_end: Optional[threading.Event] = None

    def __next__(self) -> Any:
        while True:
            try:
                return next(self._current)
            except StopIteration:
                pass
            if not self._go_next():
                raise StopIteration

    def _go_next(self) -> bool:
        if self._signal_after_end is not None:
            self._signal_after_end.set()
            self._signal_after_end = None

        entry = self._input._pop_next()
        if entry is None:
            if not self._input.keep_alive_if_empty:
                return False
            entry = (_Zero(1, 44100, THRESHOLD, self._format), None)

        self._current, self._signal_after_end = entry
        return True

    def current_frame_len(self) -> Optional[int]:
        frame_len = self._current.current_frame_len()
        if frame_len is not None:
            if frame_len != 0:
                return frame_len
            if self._input.keep_alive_if_empty and not self._input._has_next():
                return THRESHOLD

        lower, _ = _size_hint_of(self._current)
        if lower > 0:
            return lower
        return THRESHOLD

    def channels(self) -> int:
        return self._current.channels()

    def sample_rate(self) -> int:
        return self._current.sample_rate()

    def total_duration(self) -> Optional[float]:
        return None

    def sample_format(self) -> SampleFormat:
        return self._format

    def size_hint(self) -> SizeHint:
        return _size_hint_of(self._current)[0], None

    def try_seek(self, pos: float) -> None:
        """Seek within the source currently playing only."""
        self._current.try_seek(pos)


def queue(
    keep_alive_if_empty: bool, sample_format: SampleFormat = SampleFormat.F32
) -> Tuple[SourcesQueueInput, SourcesQueueOutput]:
    """Build a queue, returning its input and its output.

    With ``keep_alive_if_empty`` the output plays silence while the queue is
    empty; otherwise it ends once every queued source has finished.
    """
    input = SourcesQueueInput(keep_alive_if_empty)
    return input, SourcesQueueOutput(input, sample_format)