"""Audio sample sources: buffers, format, channel and rate conversion, queues, mixing, sinks and WAV decoding."""

__version__ = "0.1.0"

__all__ = [
    "buffer",
    "channels",
    "decoder",
    "mixer",
    "queue",
    "sample_rate",
    "samples",
    "sink",
    "source",
    "wav",
]