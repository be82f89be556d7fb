# sonari

sonari treats audio as streams of samples. A stream is called a *source*. A
source is a Python iterator of interleaved samples. It also reports its
channel count, sample rate, sample format and, when it is known, its total
duration in seconds. You can convert, queue, mix and control sources.

The package uses only the standard library. The test suite uses `pytest` and
`hypothesis`, which the `test` extra lists.

## Modules

| Module | Contents |
| --- | --- |
| `sonari.source` | `Source`, the abstract base of every stream; `SeekError` and its subclass `SeekNotSupported` |
| `sonari.samples` | `SampleFormat` (`I16`, `U16`, `F32`) with `lerp`, `amplify`, `saturating_add` and `zero_value`; `convert_sample`; `DataConverter` |
| `sonari.channels` | `ChannelCountConverter`, which drops extra channels, or duplicates a mono channel and fills the remaining ones with silence |
| `sonari.sample_rate` | `SampleRateConverter`, a resampler that uses linear interpolation |
| `sonari.buffer` | `SamplesBuffer`, an in-memory source that can seek |
| `sonari.queue` | `queue()`, which returns a `SourcesQueueInput` and a `SourcesQueueOutput` that plays queued sources in order |
| `sonari.mixer` | `mixer()`, which returns a `DynamicMixerController` and a `DynamicMixer` that sums every added source |
| `sonari.sink` | `Sink`, a queue with volume, speed, pause, stop, skip and seek controls |
| `sonari.wav` | `WavDecoder`, `WavFormatError`, `is_wave` and the sample-width helpers `f32_to_i16`, `i8_to_i16`, `i24_to_i16` and `i32_to_i16` |
| `sonari.decoder` | `Decoder`, `LoopedDecoder`, `DecoderError` and `Mp4Type` |

All durations and seek positions are given in seconds, as `float`.

## Examples

A buffer of samples:

```python
from sonari.buffer import SamplesBuffer
from sonari.samples import SampleFormat

buf = SamplesBuffer(2, 2, [0, 0, 0, 0, 0, 0], SampleFormat.I16)
print(buf.total_duration())   # 1.5
print(list(buf))              # [0, 0, 0, 0, 0, 0]
```

`SamplesBuffer.try_seek` jumps straight to a position. A position past the
end stops at the end. The next sample returned is still on the channel that
would have come next without the seek.

Mixing two sources:

```python
from sonari.buffer import SamplesBuffer
from sonari.mixer import mixer
from sonari.samples import SampleFormat

controller, output = mixer(1, 48000, SampleFormat.I16)
controller.add(SamplesBuffer(1, 48000, [10, -10, 10, -10], SampleFormat.I16))
controller.add(SamplesBuffer(1, 48000, [5, 5, 5, 5], SampleFormat.I16))
print(list(output))           # [15, -5, 15, -5]
```

The mixer converts each added source to its own channel count, sample rate
and sample format. A source added while the mixer is playing starts on the
next frame boundary.

Playing sources one after another:

```python
from sonari.buffer import SamplesBuffer
from sonari.queue import queue
from sonari.samples import SampleFormat

tx, rx = queue(False, SampleFormat.I16)
tx.append(SamplesBuffer(1, 48000, [1, 2], SampleFormat.I16))
tx.append(SamplesBuffer(1, 48000, [3, 4], SampleFormat.I16))
print(list(rx))               # [1, 2, 3, 4]
```

The queue can be built with `keep_alive_if_empty=True`. It then yields
silence instead of ending when no source is left.
`SourcesQueueInput.append_with_signal` returns a `threading.Event`, which is
set once that source has finished.

Decoding a WAV file:

```python
from sonari.decoder import Decoder

with open("sound.wav", "rb") as fh:
    decoder = Decoder(fh)
    print(decoder.channels(), decoder.sample_rate(), decoder.total_duration())
    samples = list(decoder)   # i16 samples
```

The WAV decoder reads these encodings:

- integer PCM at 8, 16, 24 or 32 bits;
- 32-bit float;
- the extensible variants of the formats above.

Every sample comes out as `i16`, and the decoder can seek. If the data is
not a WAV file that the decoder can read, `Decoder` raises `DecoderError`.
`Decoder.new_looped` returns a `LoopedDecoder`. When it reaches the end of
the stream, it rewinds to the start and plays again.

Controlling playback with a sink:

```python
from sonari.buffer import SamplesBuffer
from sonari.samples import SampleFormat
from sonari.sink import Sink

sink, output = Sink.new_idle()
sink.append(SamplesBuffer(1, 1, [10, -10, 20, -20], SampleFormat.I16))
sink.volume = 0.5
sink.pause()
sink.play()
print(next(output))           # an f32 sample
sink.stop()
```

A sink yields `f32` samples. It reads its controls every 5 ms of audio. A
new setting therefore takes effect within that time, measured in samples
read from `output`.

Some calls wait until the output has been read far enough:

- `try_seek` waits until the seek has been applied;
- `sleep_until_end` waits until the last appended source has finished;
- `clear` waits until the queued sources have been dropped.

All three need another thread to keep reading `output`. A sink can also be
used as a context manager. Leaving it calls `close`, which stops its sounds
unless `detach` was called first.

## What sonari does not do

sonari does not open sound devices and does not play audio through
speakers. It produces samples, and sending them somewhere is up to you.
WAV is the only file format it decodes. `Mp4Type` parses container names
such as `"m4a"`, but no MP4, MP3, FLAC or Vorbis decoder is included.