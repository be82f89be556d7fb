"""A controllable track that plays queued sources one after another."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Optional, Tuple

from sonari.queue import SourcesQueueInput, SourcesQueueOutput, queue
from sonari.samples import SampleFormat, convert_sample
from sonari.source import SizeHint, Source, _size_hint_of

_ACCESS_PERIOD = 0.005
"""Seconds of audio between two reads of the sink's controls."""


class _SeekOrder:
    """A pending seek together with the channel its outcome is reported on."""

    def __init__(self, pos: float) -> None:
        self.pos = pos
        self._done = threading.Event()
        self._error: Optional[BaseException] = None

    def attempt(self, source: "_ControlledSource") -> None:
        try:
            source.try_seek(self.pos)
        except Exception as error:  # reported to the caller of Sink.try_seek
            self._error = error
        self._done.set()

    def cancel(self) -> None:
        self._done.set()

    def wait(self) -> None:
        self._done.wait()
        if self._error is not None:
            raise self._error


@dataclass
class _Controls:
    pause: bool = False
    volume: float = 1.0
    stopped: bool = False
    speed: float = 1.0
    to_clear: int = 0
    seek: Optional[_SeekOrder] = None
    lock: threading.Lock = field(default_factory=threading.Lock)


class _ControlledSource(Source):
    """Applies the sink's controls to a source and yields ``f32`` samples."""

    def __init__(self, source: Source, controls: _Controls) -> None:
        self._source = source
        self._format = source.sample_format()
        self._controls = controls
        self._factor = 1.0
        self._speed = 1.0
        self._paused = False
        self._skipped = False
        self._stopped = False
        self._pos_in_frame = 0
        rate_samples = _ACCESS_PERIOD * source.sample_rate() * source.channels()
        self._update_frequency = max(1, int(rate_samples))
        self._until_update = 1

    def _refresh(self) -> None:
        controls = self._controls
        if controls.stopped:
            self._stopped = True
        with controls.lock:
            if controls.to_clear > 0:
                self._skipped = True
                controls.to_clear -= 1
            self._factor = controls.volume
            self._paused = controls.pause
            self._speed = controls.speed
            order, controls.seek = controls.seek, None
        if order is not None:
            order.attempt(self)

    def __next__(self) -> Any:
        self._until_update -= 1
        if self._until_update <= 0:
            self._refresh()
            self._until_update = self._update_frequency

        if self._stopped or self._skipped:
            raise StopIteration
        if self._paused and self._pos_in_frame == 0:
            return convert_sample(self._format.zero_value(), self._format, SampleFormat.F32)

        value = next(self._source)
        self._pos_in_frame = (self._pos_in_frame + 1) % self._source.channels()
        amplified = self._format.amplify(value, self._factor)
        return convert_sample(amplified, self._format, SampleFormat.F32)

    def current_frame_len(self) -> Optional[int]:
        return self._source.current_frame_len()

    def channels(self) -> int:
        return self._source.channels()

    def sample_rate(self) -> int:
        return int(self._source.sample_rate() * self._speed)

    def total_duration(self) -> Optional[float]:
        duration = self._source.total_duration()
        return None if duration is None else duration / self._speed

    def sample_format(self) -> SampleFormat:
        return SampleFormat.F32

    def size_hint(self) -> SizeHint:
        return _size_hint_of(self._source)

    def try_seek(self, pos: float) -> None:
        self._source.try_seek(pos * self._speed)


class _Counter:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.value = 0

    def add(self, amount: int) -> None:
        with self._lock:
            self.value += amount


class _Done(Source):
    """Decrements a counter once the wrapped source has finished."""

    def __init__(self, source: Source, counter: _Counter) -> None:
        self._source = source
        self._counter = counter
        self._signalled = False

    def __next__(self) -> Any:
        try:
            return next(self._source)
        except StopIteration:
            if not self._signalled:
                self._signalled = True
                self._counter.add(-1)
            raise

    def current_frame_len(self) -> Optional[int]:
        return self._source.current_frame_len()

    def channels(self) -> int:
        return self._source.channels()

    def sample_rate(self) -> int:
        return self._source.sample_rate()

    def total_duration(self) -> Optional[float]:
        return self._source.total_duration()

    def sample_format(self) -> SampleFormat:
        return self._source.sample_format()

    def size_hint(self) -> SizeHint:
        return self._source.size_hint()

    def try_seek(self, pos: float) -> None:
        self._source.try_seek(pos)


class Sink:
    """A track of sounds with play, pause, volume, speed and seek controls.

    Closing the sink stops its sounds unless it was detached first.
    """

    def __init__(self, queue_input: SourcesQueueInput) -> None:
        self._queue_tx = queue_input
        self._end_lock = threading.Lock()
        self._sleep_until_end: Optional[threading.Event] = None
        self._controls = _Controls()
        self._sound_count = _Counter()
        self._detached = False

    @classmethod
    def new_idle(cls) -> Tuple["Sink", SourcesQueueOutput]:
        """Build a sink together with the output it plays into."""
        queue_tx, queue_rx = queue(True, SampleFormat.F32)
        return cls(queue_tx), queue_rx

    def append(self, source: Source) -> None:
        """Queue ``source`` after the sounds already queued."""
        if self._controls.stopped:
            if len(self) > 0:
                self.sleep_until_end()
            self._controls.stopped = False

        controlled = _ControlledSource(source, self._controls)
        self._sound_count.add(1)
        done = _Done(controlled, self._sound_count)
        signal = self._queue_tx.append_with_signal(done)
        with self._end_lock:
            self._sleep_until_end = signal

    @property
    def volume(self) -> float:
        """Factor every sample is multiplied by; 1.0 leaves the sound unchanged."""
        with self._controls.lock:
            return self._controls.volume

    @volume.setter
    def volume(self, value: float) -> None:
        with self._controls.lock:
            self._controls.volume = value

    @property
    def speed(self) -> float:
        """Playback speed factor; 1.0 is normal speed."""
        with self._controls.lock:
            return self._controls.speed

    @speed.setter
    def speed(self, value: float) -> None:
        with self._controls.lock:
            self._controls.speed = value

    def play(self) -> None:
        """Resume playback if paused."""
        self._controls.pause = False

    def pause(self) -> None:
        """Pause playback."""
        self._controls.pause = True

    def is_paused(self) -> bool:
        return self._controls.pause

    def try_seek(self, pos: float) -> None:
        """Seek the current source to ``pos`` seconds, waiting until playback applies it."""
        order = _SeekOrder(pos)
        with self._controls.lock:
            previous, self._controls.seek = self._controls.seek, order
        if previous is not None:
            previous.cancel()
        order.wait()

    def clear(self) -> None:
        """Drop every queued source, wait for that to happen, and pause."""
        with self._controls.lock:
            self._controls.to_clear = len(self)
        self.sleep_until_end()
        self.pause()

    def skip_one(self) -> None:
        """Skip to the next queued source."""
        count = len(self)
        with self._controls.lock:
            if count > self._controls.to_clear:
                self._controls.to_clear += 1

    def stop(self) -> None:
        """Stop playback by emptying the queue."""
        self._controls.stopped = True

    def detach(self) -> None:
        """Release the sink while letting its sounds play on."""
        self._detached = True
        self.close()

    def close(self) -> None:
        """Release the sink; its sounds stop unless it was detached."""
        self._queue_tx.set_keep_alive_if_empty(False)
        if not self._detached:
            self._controls.stopped = True

    def sleep_until_end(self) -> None:
        """Block until the last queued sound has finished."""
        with self._end_lock:
            signal, self._sleep_until_end = self._sleep_until_end, None
        if signal is not None:
            signal.wait()

    def empty(self) -> bool:
        return len(self) == 0

    def __len__(self) -> int:
        return self._sound_count.value

    def __enter__(self) -> "Sink":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()