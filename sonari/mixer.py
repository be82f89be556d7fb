"""A mixer that plays several sources at the same time."""

from __future__ import annotations

import threading
from typing import Any, Iterator, List, Optional, Tuple

from sonari.channels import ChannelCountConverter
from sonari.sample_rate import SampleRateConverter
from sonari.samples import DataConverter, SampleFormat
from sonari.source import SeekNotSupported, SizeHint, Source, _size_hint_of

_EXHAUSTED = object()


class _Take:
    """Yields at most ``limit`` samples of a source; no limit when ``limit`` is None."""

    def __init__(self, source: Source, limit: Optional[int]) -> None:
        self.source = source
        self._remaining = limit

    def __iter__(self) -> Iterator[Any]:
        return self

    def __next__(self) -> Any:
        if self._remaining is not None:
            if self._remaining <= 0:
                raise StopIteration
            self._remaining -= 1
        return next(self.source)

    def sample_format(self) -> SampleFormat:
        return self.source.sample_format()

    def size_hint(self) -> SizeHint:
        low, high = _size_hint_of(self.source)
        if self._remaining is None:
            return low, high
        high = self._remaining if high is None else min(high, self._remaining)
        return min(low, self._remaining), high


class _Formatted:
    """Passes samples through while announcing their format."""

    def __init__(self, inner: Any, sample_format: SampleFormat) -> None:
        self._inner = inner
        self._format = sample_format

    def __iter__(self) -> Iterator[Any]:
        return self

    def __next__(self) -> Any:
        return next(self._inner)

    def sample_format(self) -> SampleFormat:
        return self._format

    def size_hint(self) -> SizeHint:
        return _size_hint_of(self._inner)


class _UniformSource(Source):
    """Converts a source to fixed channels, sample rate and sample format."""

    def __init__(self, source: Source, channels: int, sample_rate: int, sample_format: SampleFormat) -> None:
        self._target_channels = channels
        self._target_rate = sample_rate
        self._target_format = sample_format
        self._bootstrap(source)

    def _bootstrap(self, source: Source) -> None:
        source_format = source.sample_format()
        from_channels = source.channels()
        self._take = _Take(source, source.current_frame_len())
        resampled = SampleRateConverter(
            self._take, source.sample_rate(), self._target_rate, from_channels, source_format
        )
        rechanneled = ChannelCountConverter(
            _Formatted(resampled, source_format), from_channels, self._target_channels
        )
        self._inner = DataConverter(rechanneled, source_format, self._target_format)

    def __next__(self) -> Any:
        value = next(self._inner, _EXHAUSTED)
        if value is not _EXHAUSTED:
            return value
        self._bootstrap(self._take.source)
        return next(self._inner)

    def current_frame_len(self) -> Optional[int]:
        return None

    def channels(self) -> int:
        return self._target_channels

    def sample_rate(self) -> int:
        return self._target_rate

    def total_duration(self) -> Optional[float]:
        return self._take.source.total_duration()

    def sample_format(self) -> SampleFormat:
        return self._target_format

    def size_hint(self) -> SizeHint:
        return _size_hint_of(self._inner)

    def try_seek(self, pos: float) -> None:
        self._take.source.try_seek(pos)


class DynamicMixerController:
    """The side of a mixer that sources are added to."""

    def __init__(self, channels: int, sample_rate: int, sample_format: SampleFormat) -> None:
        self.channels = channels
        self.sample_rate = sample_rate
        self.sample_format = sample_format
        self._lock = threading.Lock()
        self._pending: List[Source] = []
        self._has_pending = False

    def add(self, source: Source) -> None:
        """Start mixing ``source`` in with the sources already playing."""
        uniform = _UniformSource(source, self.channels, self.sample_rate, self.sample_format)
        with self._lock:
            self._pending.append(uniform)
            self._has_pending = True


class DynamicMixer(Source):
    """The output of a mixer: the sum of every source playing."""

    def __init__(self, controller: DynamicMixerController) -> None:
        self._input = controller
        self._current: List[Source] = []
        self._sample_count = 0

    def _start_pending_sources(self) -> None:
        # A source only starts on a frame boundary so its channels line up.
        controller = self._input
        with controller._lock:
            still_pending = []
            for source in controller._pending:
                if self._sample_count % source.channels() == 0:
                    self._current.append(source)
                else:
                    still_pending.append(source)
            controller._pending = still_pending
            controller._has_pending = bool(still_pending)

    def _sum_current_sources(self) -> Any:
        sample_format = self._input.sample_format
        total = sample_format.zero_value()
        still_current = []
        for source in self._current:
            value = next(source, _EXHAUSTED)
            if value is not _EXHAUSTED:
                total = sample_format.saturating_add(total, value)
                still_current.append(source)
        self._current = still_current
        return total

    def __next__(self) -> Any:
        if self._input._has_pending:
            self._start_pending_sources()
        self._sample_count += 1
        total = self._sum_current_sources()
        if not self._current:
            raise StopIteration
        return total

    def current_frame_len(self) -> Optional[int]:
        return None

    def channels(self) -> int:
        return self._input.channels

    def sample_rate(self) -> int:
        return self._input.sample_rate

    def total_duration(self) -> Optional[float]:
        return None

    def sample_format(self) -> SampleFormat:
        return self._input.sample_format

    def size_hint(self) -> SizeHint:
        return 0, None

    def try_seek(self, pos: float) -> None:
        raise SeekNotSupported(type(self).__name__)


def mixer(
    channels: int, sample_rate: int, sample_format: SampleFormat = SampleFormat.F32
) -> Tuple[DynamicMixerController, DynamicMixer]:
    """Build a mixer whose output has the given layout; every added source is converted to it."""
    controller = DynamicMixerController(channels, sample_rate, sample_format)
    return controller, DynamicMixer(controller)