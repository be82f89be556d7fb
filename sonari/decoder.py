"""Decoding of audio files into sources of ``i16`` samples."""

from __future__ import annotations

import enum
import struct
from typing import Any, BinaryIO, Optional

from sonari.samples import SampleFormat
from sonari.source import SeekNotSupported, SizeHint, Source
from sonari.wav import WavDecoder, WavFormatError


class DecoderError(Exception):
    """Raised when the data given to a decoder cannot be decoded."""

    def __init__(self, message: str = "Unrecognized format") -> None:
        super().__init__(message)


class Mp4Type(enum.Enum):
    """The container variants that share the MP4 layout."""

    MP4 = "mp4"
    M4A = "m4a"
    M4P = "m4p"
    M4B = "m4b"
    M4R = "m4r"
    M4V = "m4v"
    MOV = "mov"

    @classmethod
    def from_str(cls, text: str) -> "Mp4Type":
        """Parse a file extension, ignoring case."""
        try:
            return cls(text.lower())
        except ValueError:
            raise ValueError(f"{text} is not a valid mp4 extension") from None

    def __str__(self) -> str:
        return self.value


class _DecoderBase(Source):
    """Delegates to a format decoder; behaves as an empty source when there is none."""

    _inner: Optional[WavDecoder]

    def __next__(self) -> Any:
        if self._inner is None:
            raise StopIteration
        return next(self._inner)

    def current_frame_len(self) -> Optional[int]:
        if self._inner is None:
            return 0
        return self._inner.current_frame_len()

    def channels(self) -> int:
        if self._inner is None:
            return 0
        return self._inner.channels()

    def sample_rate(self) -> int:
        if self._inner is None:
            return 1
        return self._inner.sample_rate()

    def total_duration(self) -> Optional[float]:
        if self._inner is None:
            return 0.0
        return self._inner.total_duration()

    def sample_format(self) -> SampleFormat:
        return SampleFormat.I16

    def size_hint(self) -> SizeHint:
        if self._inner is None:
            return 0, None
        return self._inner.size_hint()

    def try_seek(self, pos: float) -> None:
        if self._inner is None:
            raise SeekNotSupported("empty decoder")
        self._inner.try_seek(pos)


class Decoder(_DecoderBase):
    """A source of samples decoded from a file, its format detected automatically."""

    def __init__(self, data: BinaryIO) -> None:
        try:
            self._inner = WavDecoder(data)
        except WavFormatError as error:
            raise DecoderError() from error

    @classmethod
    def new_wav(cls, data: BinaryIO) -> "Decoder":
        """Build a decoder for WAV data."""
        return cls(data)

    @classmethod
    def new_looped(cls, data: BinaryIO) -> "LoopedDecoder":
        """Build a decoder that starts over from the beginning whenever it ends."""
        return LoopedDecoder(cls(data))

    def __next__(self) -> Any:
        return super().__next__()

    def current_frame_len(self) -> Optional[int]:
        return super().current_frame_len()

    def channels(self) -> int:
        return super().channels()

    def sample_rate(self) -> int:
        return super().sample_rate()

    def total_duration(self) -> Optional[float]:
        return super().total_duration()

    def sample_format(self) -> SampleFormat:
        return SampleFormat.I16

    def size_hint(self) -> SizeHint:
        return super().size_hint()

    def try_seek(self, pos: float) -> None:
        super().try_seek(pos)


class LoopedDecoder(_DecoderBase):
    """A decoder that rewinds its stream and plays again once it runs out."""

    def __init__(self, decoder: Decoder) -> None:
        self._inner = decoder._inner

    def __next__(self) -> Any:
        if self._inner is None:
            raise StopIteration
        try:
            return next(self._inner)
        except StopIteration:
            pass
        reader = self._inner.into_inner()
        self._inner = None
        try:
            reader.seek(0)
            self._inner = WavDecoder(reader)
        except (WavFormatError, OSError, struct.error):
            raise StopIteration from None
        return next(self._inner)

    def current_frame_len(self) -> Optional[int]:
        return super().current_frame_len()

    def channels(self) -> int:
        return super().channels()

    def sample_rate(self) -> int:
        return super().sample_rate()

    def total_duration(self) -> Optional[float]:
        return None

    def sample_format(self) -> SampleFormat:
        return SampleFormat.I16

    def size_hint(self) -> SizeHint:
        return super().size_hint()

    def try_seek(self, pos: float) -> None:
        super().try_seek(pos)