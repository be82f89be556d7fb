"""Decoding of RIFF/WAVE audio into ``i16`` samples."""

from __future__ import annotations

import struct
from typing import Any, BinaryIO, Optional

from sonari.samples import SampleFormat
from sonari.source import SizeHint, Source

_FORMAT_PCM = 1
_FORMAT_FLOAT = 3
_FORMAT_EXTENSIBLE = 0xFFFE


class WavFormatError(ValueError):
    """Raised when data is not WAV, or uses a layout that cannot be decoded."""


def _wrap_i16(value: int) -> int:
    return (value + 32768) % 65536 - 32768


def f32_to_i16(value: float) -> int:
    """Scale a float sample in [-1, 1] to ``i16``, clipping values outside that range."""
    return int(max(-1.0, min(1.0, value)) * 32767)


def i8_to_i16(value: int) -> int:
    """Scale an 8-bit sample by 256."""
    return value * 256


def i24_to_i16(value: int) -> int:
    """Keep the top 16 bits of a 24-bit sample."""
    return _wrap_i16(value >> 8)


def i32_to_i16(value: int) -> int:
    """Keep the top 16 bits of a 32-bit sample."""
    return _wrap_i16(value >> 16)


class _Header:
    def __init__(self, audio_format, channels, sample_rate, block_align, bits, data_start, data_len):
        self.audio_format = audio_format
        self.channels = channels
        self.sample_rate = sample_rate
        self.block_align = block_align
        self.bits = bits
        self.data_start = data_start
        self.data_len = data_len


def _read_header(data: BinaryIO) -> _Header:
    riff = data.read(12)
    if len(riff) < 12 or riff[:4] != b"RIFF" or riff[8:12] != b"WAVE":
        raise WavFormatError("not a RIFF/WAVE stream")
    fmt = None
    while True:
        chunk = data.read(8)
        if len(chunk) < 8:
            raise WavFormatError("no data chunk found")
        chunk_id, size = chunk[:4], struct.unpack("<I", chunk[4:])[0]
        if chunk_id == b"fmt ":
            body = data.read(size)
            if len(body) < 16:
                raise WavFormatError("fmt chunk too short")
            fmt = struct.unpack("<HHIIHH", body[:16])
            audio_format = fmt[0]
            if audio_format == _FORMAT_EXTENSIBLE:
                if len(body) < 26:
                    raise WavFormatError("extensible fmt chunk too short")
                audio_format = struct.unpack("<H", body[24:26])[0]
            fmt = (audio_format,) + fmt[1:]
            if size % 2:
                data.read(1)
        elif chunk_id == b"data":
            if fmt is None:
                raise WavFormatError("data chunk before fmt chunk")
            audio_format, channels, rate, _, block_align, bits = fmt
            if channels == 0 or rate == 0 or block_align == 0:
                raise WavFormatError("invalid wav header")
            return _Header(audio_format, channels, rate, block_align, bits, data.tell(), size)
        else:
            data.seek(size + size % 2, 1)


def is_wave(data: BinaryIO) -> bool:
    """Tell whether ``data`` holds WAV, leaving its position where it was."""
    position = data.tell()
    try:
        _read_header(data)
    except (WavFormatError, struct.error, OSError):
        return False
    finally:
        data.seek(position)
    return True


class WavDecoder(Source):
    """A source decoding WAV data, yielding ``i16`` samples."""

    def __init__(self, data: BinaryIO) -> None:
        if not is_wave(data):
            raise WavFormatError("data is not WAV")
        header = _read_header(data)
        fmt, bits = header.audio_format, header.bits
        supported = (fmt == _FORMAT_FLOAT and bits == 32) or (fmt == _FORMAT_PCM and bits in (8, 16, 24, 32))
        if not supported:
            raise WavFormatError(f"unimplemented wav spec: format {fmt}, {bits} bits")

        self._data = data
        self._header = header
        self._width = header.block_align // header.channels
        if self._width * 8 < bits:
            raise WavFormatError("block alignment too small for sample size")
        self._len = header.data_len // header.block_align * header.channels
        self._samples_read = 0
        micros = 1_000_000 * self._len // (header.sample_rate * header.channels)
        self._total_duration = micros / 1_000_000

    def _decode(self, raw: bytes) -> int:
        header = self._header
        if header.audio_format == _FORMAT_FLOAT:
            return f32_to_i16(struct.unpack("<f", raw[:4])[0])
        if header.bits == 8:
            return i8_to_i16(raw[0] - 128)
        value = int.from_bytes(raw, "little", signed=True) >> (self._width * 8 - header.bits)
        if header.bits == 16:
            return value
        if header.bits == 24:
            return i24_to_i16(value)
        return i32_to_i16(value)

    def __next__(self) -> Any:
        if self._samples_read >= self._len:
            raise StopIteration
        raw = self._data.read(self._width)
        if len(raw) < self._width:
            raise StopIteration
        self._samples_read += 1
        return self._decode(raw)

    def current_frame_len(self) -> Optional[int]:
        return None

    def channels(self) -> int:
        return self._header.channels

    def sample_rate(self) -> int:
        return self._header.sample_rate

    def total_duration(self) -> Optional[float]:
        return self._total_duration

    def sample_format(self) -> SampleFormat:
        return SampleFormat.I16

    def size_hint(self) -> SizeHint:
        remaining = self._len - self._samples_read
        return remaining, remaining

    def __len__(self) -> int:
        return self._len - self._samples_read

    def try_seek(self, pos: float) -> None:
        """Jump to ``pos`` seconds, saturating at the end, keeping channel order."""
        if pos < 0:
            raise ValueError("seek position must not be negative")
        channels = self._header.channels
        file_len = self._len // channels
        new_pos = min(int(pos * self._header.sample_rate), file_len)
        to_skip = self._samples_read % channels
        self._data.seek(self._header.data_start + new_pos * self._header.block_align)
        self._samples_read = new_pos * channels
        for _ in range(to_skip):
            next(self, None)

    def into_inner(self) -> BinaryIO:
        """Give back the underlying stream."""
        return self._data