"""
Event ingestion over a long-lived chunked connection.

- ChunkedStreamWriter frames opaque payloads as HTTP chunks
- EventStream serializes one event per chunk
"""

from .writer import ChunkedStreamWriter, StreamState, encode_chunk
from .events import EventStream

__all__ = [
    "ChunkedStreamWriter",
    "StreamState",
    "encode_chunk",
    "EventStream",
]
