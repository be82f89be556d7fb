import io
import math
import struct
from itertools import islice

import pytest

from sonari.decoder import Decoder, DecoderError, LoopedDecoder, Mp4Type
from sonari.samples import SampleFormat
from sonari.source import SeekNotSupported

MUSIC_RATE = 2000


def make_wav(samples, channels, rate, bits=16, audio_format=1):
    payload = bytearray()
    for sample in samples:
        if audio_format == 3:
            payload += struct.pack("<f", sample)
        elif bits == 8:
            payload.append(sample + 128)
        else:
            payload += int(sample).to_bytes(bits // 8, "little", signed=True)
    block_align = channels * bits // 8
    fmt = struct.pack("<HHIIHH", audio_format, channels, rate, rate * block_align, block_align, bits)
    body = b"WAVE" + b"fmt " + struct.pack("<I", len(fmt)) + fmt
    body += b"data" + struct.pack("<I", len(payload)) + bytes(payload)
    return b"RIFF" + struct.pack("<I", len(body)) + body


def sine(count, amplitude):
    return [round(amplitude * math.sin(i * 0.1)) for i in range(count)]


def get_music():
    frames = 12 * MUSIC_RATE
    return Decoder(io.BytesIO(make_wav(sine(frames, 12000), 1, MUSIC_RATE)))


def get_rl():
    rate = 1000
    samples = []
    for frame in range(2000):
        samples.append(0)
        samples.append((8000 if frame % 2 == 0 else -8000) if 500 <= frame < 1500 else 0)
    return Decoder(io.BytesIO(make_wav(samples, 2, rate)))


def time_remaining(decoder):
    rate = decoder.sample_rate()
    channels = decoder.channels()
    return sum(1 for _ in decoder) / rate / channels


def is_silent(samples, channels, channel):
    assert len(samples) == 100
    volume = sum(abs(s) for s in samples[channel::channels])
    return volume / len(samples) * channels < 0.0001


@pytest.mark.parametrize(
    "samples,channels,bits,audio_format",
    [
        (sine(400, 12000), 1, 16, 1),
        (sine(400, 12000), 2, 16, 1),
        (sine(400, 3_000_000), 2, 24, 1),
        ([s / 20000 for s in sine(400, 12000)], 1, 32, 3),
        ([s / 20000 for s in sine(400, 12000)], 2, 32, 3),
        (sine(400, 1_000_000_000), 1, 32, 1),
        (sine(400, 100), 1, 8, 1),
    ],
)
def test_wav_encodings(samples, channels, bits, audio_format):
    data = make_wav(samples, channels, 44100, bits, audio_format)
    decoded = list(Decoder(io.BytesIO(data)))
    assert len(decoded) == len(samples)
    assert any(x != 0 for x in decoded)


def test_decoder_reports_layout():
    decoder = Decoder(io.BytesIO(make_wav([1, 2, 3, 4], 2, 48000)))
    assert decoder.channels() == 2
    assert decoder.sample_rate() == 48000
    assert decoder.sample_format() is SampleFormat.I16
    assert decoder.size_hint() == (4, 4)
    assert list(decoder) == [1, 2, 3, 4]


def test_total_duration():
    assert get_music().total_duration() == pytest.approx(12.0)


def test_unrecognized_format():
    with pytest.raises(DecoderError, match="Unrecognized format"):
        Decoder(io.BytesIO(b"definitely not audio data"))


def test_new_wav_rejects_other_data():
    with pytest.raises(DecoderError):
        Decoder.new_wav(io.BytesIO(b"RIFF0000ABCD"))


def test_new_wav_decodes():
    decoder = Decoder.new_wav(io.BytesIO(make_wav([5, -5], 1, 8000)))
    assert list(decoder) == [5, -5]


def test_seek_returns_ok_for_wav():
    decoder = get_music()
    decoder.try_seek(2.5)
    assert time_remaining(decoder) == pytest.approx(9.5, abs=0.01)


def test_seek_beyond_end_saturates():
    decoder = get_music()
    decoder.try_seek(999.0)
    assert time_remaining(decoder) < 1.0


def test_seek_results_in_correct_remaining_playtime():
    total = time_remaining(get_music())
    decoder = get_music()
    decoder.try_seek(total - 5.0)
    assert abs(time_remaining(decoder) - 5.0) <= 0.25


def test_seek_possible_after_exhausting_source():
    source = get_music()
    for _ in source:
        pass
    assert next(source, None) is None
    source.try_seek(0.0)
    assert next(source, None) == 0


def test_seek_does_not_break_channel_order():
    source = get_rl()
    assert source.channels() == 2
    samples = list(source)
    first = next(i for i in range(1, len(samples), 2) if samples[i] != 0)
    beep_start = (first // 2) / source.sample_rate()

    source = get_rl()
    channel_offset = 0
    for offset in (1, 4, 7, 40, 41, 120, 179):
        next(source)
        channel_offset = (channel_offset + 1) % 2
        source.try_seek(beep_start + offset / source.sample_rate())
        window = list(islice(source, 100))
        assert is_silent(window, 2, channel_offset)
        assert not is_silent(window, 2, (1 + channel_offset) % 2)


def test_looped_decoder_repeats():
    looped = Decoder.new_looped(io.BytesIO(make_wav([1, 2, 3], 1, 8000)))
    assert list(islice(looped, 7)) == [1, 2, 3, 1, 2, 3, 1]
    assert looped.total_duration() is None
    assert looped.channels() == 1


def test_looped_decoder_wraps_existing_decoder():
    looped = LoopedDecoder(Decoder(io.BytesIO(make_wav([7, 8], 1, 8000))))
    assert list(islice(looped, 5)) == [7, 8, 7, 8, 7]


def test_looped_decoder_ends_when_stream_cannot_restart():
    stream = io.BytesIO(make_wav([1, 2], 1, 8000))
    looped = Decoder.new_looped(stream)
    assert [next(looped), next(looped)] == [1, 2]
    stream.seek(0)
    stream.truncate(0)
    assert next(looped, None) is None
    assert looped.channels() == 0
    assert looped.sample_rate() == 1
    assert looped.current_frame_len() == 0
    assert looped.size_hint() == (0, None)
    with pytest.raises(SeekNotSupported):
        looped.try_seek(0.0)


@pytest.mark.parametrize(
    "text,expected",
    [
        ("mp4", Mp4Type.MP4),
        ("M4A", Mp4Type.M4A),
        ("m4p", Mp4Type.M4P),
        ("m4b", Mp4Type.M4B),
        ("M4r", Mp4Type.M4R),
        ("m4v", Mp4Type.M4V),
        ("MOV", Mp4Type.MOV),
    ],
)
def test_mp4_type_from_str(text, expected):
    assert Mp4Type.from_str(text) is expected


def test_mp4_type_round_trip():
    for kind in Mp4Type:
        assert Mp4Type.from_str(str(kind)) is kind
    assert str(Mp4Type.MOV) == "mov"


def test_mp4_type_invalid():
    with pytest.raises(ValueError, match="ogg is not a valid mp4 extension"):
        Mp4Type.from_str("ogg")