"""Streaming support: reconstruction of stream parts from model events."""

from toolloop.application.streaming.delta_reconstructor import StreamingDeltaReconstructor, adapt_stream_text, reconstruct, stream_text_parts

__all__ = [
    "StreamingDeltaReconstructor",
    "adapt_stream_text",
    "reconstruct",
    "stream_text_parts",
]
