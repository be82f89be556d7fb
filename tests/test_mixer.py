import pytest

from sonari.buffer import SamplesBuffer
from sonari.mixer import mixer
from sonari.samples import SampleFormat, convert_sample
from sonari.source import SeekError, SeekNotSupported, Source


class _Parts(Source):
    """A source made of parts that differ in channel count."""

    def __init__(self, parts, sample_rate):
        self._parts = [(channels, list(samples)) for channels, samples in parts]
        self._rate = sample_rate

    def _drop_finished(self):
        while len(self._parts) > 1 and not self._parts[0][1]:
            self._parts.pop(0)

    def __next__(self):
        self._drop_finished()
        samples = self._parts[0][1]
        if not samples:
            raise StopIteration
        return samples.pop(0)

    def current_frame_len(self):
        self._drop_finished()
        return len(self._parts[0][1])

    def channels(self):
        self._drop_finished()
        return self._parts[0][0]

    def sample_rate(self):
        return self._rate

    def total_duration(self):
        return None

    def sample_format(self):
        return SampleFormat.I16


def test_basic():
    tx, rx = mixer(1, 48000, SampleFormat.I16)
    tx.add(SamplesBuffer(1, 48000, [10, -10, 10, -10]))
    tx.add(SamplesBuffer(1, 48000, [5, 5, 5, 5]))

    assert rx.channels() == 1
    assert rx.sample_rate() == 48000
    assert list(rx) == [15, -5, 15, -5]


def test_channels_conv():
    tx, rx = mixer(2, 48000, SampleFormat.I16)
    tx.add(SamplesBuffer(1, 48000, [10, -10, 10, -10]))
    tx.add(SamplesBuffer(1, 48000, [5, 5, 5, 5]))

    assert rx.channels() == 2
    assert rx.sample_rate() == 48000
    assert list(rx) == [15, 15, -5, -5, 15, 15, -5, -5]


def test_rate_conv():
    tx, rx = mixer(1, 96000, SampleFormat.I16)
    tx.add(SamplesBuffer(1, 48000, [10, -10, 10, -10]))
    tx.add(SamplesBuffer(1, 48000, [5, 5, 5, 5]))

    assert rx.channels() == 1
    assert rx.sample_rate() == 96000
    assert list(rx) == [15, 5, -5, 5, 15, 5, -5]


def test_start_afterwards():
    tx, rx = mixer(1, 48000, SampleFormat.I16)
    tx.add(SamplesBuffer(1, 48000, [10, -10, 10, -10]))

    assert next(rx) == 10
    assert next(rx) == -10

    tx.add(SamplesBuffer(1, 48000, [5, 5, 6, 6, 7, 7, 7]))

    assert next(rx) == 15
    assert next(rx) == -5
    assert next(rx) == 6
    assert next(rx) == 6

    tx.add(SamplesBuffer(1, 48000, [2]))

    assert next(rx) == 9
    assert next(rx) == 7
    assert next(rx) == 7
    with pytest.raises(StopIteration):
        next(rx)


def test_empty_mixer_ends_at_once():
    _, rx = mixer(2, 44100, SampleFormat.I16)
    assert list(rx) == []


def test_seek_not_supported():
    tx, rx = mixer(1, 48000, SampleFormat.I16)
    tx.add(SamplesBuffer(1, 48000, [1, 2]))
    with pytest.raises(SeekNotSupported):
        rx.try_seek(0.0)
    with pytest.raises(SeekError):
        rx.try_seek(1.0)


def test_reports_unknown_length():
    tx, rx = mixer(1, 48000, SampleFormat.I16)
    tx.add(SamplesBuffer(1, 48000, [1, 2]))
    assert rx.size_hint() == (0, None)
    assert rx.total_duration() is None
    assert rx.current_frame_len() is None
    assert rx.sample_format() is SampleFormat.I16


def test_converts_sample_format():
    tx, rx = mixer(1, 48000, SampleFormat.F32)
    tx.add(SamplesBuffer(1, 48000, [16384, -16384]))
    assert list(rx) == [
        convert_sample(16384, SampleFormat.I16, SampleFormat.F32),
        convert_sample(-16384, SampleFormat.I16, SampleFormat.F32),
    ]


def test_follows_changing_channel_count():
    tx, rx = mixer(2, 48000, SampleFormat.I16)
    tx.add(_Parts([(1, [1, 2]), (2, [3, 4])], 48000))
    assert list(rx) == [1, 1, 2, 2, 3, 4]


def test_saturates_integer_sum():
    tx, rx = mixer(1, 48000, SampleFormat.I16)
    tx.add(SamplesBuffer(1, 48000, [32767, -32768]))
    tx.add(SamplesBuffer(1, 48000, [32767, -32768]))
    assert list(rx) == [32767, -32768]


def test_waits_for_frame_boundary():
    tx, rx = mixer(2, 48000, SampleFormat.I16)
    tx.add(SamplesBuffer(2, 48000, [1, 2, 3, 4]))
    assert next(rx) == 1
    tx.add(SamplesBuffer(2, 48000, [10, 20]))
    assert next(rx) == 2
    assert next(rx) == 13
    assert next(rx) == 24
    assert list(rx) == []