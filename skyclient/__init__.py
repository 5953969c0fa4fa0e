"""
skyclient - Python client for the Sky event store.

Provides:
- One-shot HTTP+JSON calls for tables, properties and events
- Bulk event ingestion over a single chunked connection
- Structured logging and in-process client metrics
"""

__version__ = "0.1.0"

from .client import Client, DEFAULT_PORT
from .table import Table
from .models import DataType, Event, InsertMode, Property, Stats
from .transport import Transport
from .stream import ChunkedStreamWriter, EventStream, StreamState
from .timestamps import format_timestamp, parse_timestamp
from .errors import (
    SkyError,
    TransportError,
    ServerError,
    StreamError,
    StreamStateError,
    ValidationError,
)

__all__ = [
    "Client",
    "DEFAULT_PORT",
    "Table",
    "DataType",
    "Event",
    "InsertMode",
    "Property",
    "Stats",
    "Transport",
    "ChunkedStreamWriter",
    "EventStream",
    "StreamState",
    "format_timestamp",
    "parse_timestamp",
    "SkyError",
    "TransportError",
    "ServerError",
    "StreamError",
    "StreamStateError",
    "ValidationError",
]
