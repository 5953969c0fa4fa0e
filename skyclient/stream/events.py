"""Bulk event ingestion over a single chunked connection."""
from typing import TYPE_CHECKING, Any, Dict

import orjson
import structlog

from ..errors import ValidationError
from ..models import Event
from ..paths import segment
from .writer import ChunkedStreamWriter, StreamState

if TYPE_CHECKING:
    from ..table import Table

log = structlog.get_logger()


def _table_name(table: "Table | str | None") -> str | None:
    if table is None or isinstance(table, str):
        return table
    return table.name


class EventStream:
    """
    Sends events in bulk over one open connection.

    A stream bound to a table posts to ``/tables/{table}/events`` and emits
    records without a ``table`` field. An unbound stream posts to
    ``/events`` and every record names its table.

    Each ``add_event`` call becomes exactly one chunk on the wire. After a
    failed ``add_event`` the stream must be reconnected or discarded.
    """

    def __init__(
        self,
        host: str,
        port: int,
        table: "Table | str | None" = None,
        connect_timeout: float | None = None,
        timeout: float | None = None,
        auto_flush: bool = True,
    ):
        self.table = _table_name(table)
        if table is not None and not self.table:
            raise ValidationError("Table name required")
        path = f"/tables/{segment(self.table)}/events" if self.table else "/events"
        self._writer = ChunkedStreamWriter(
            host,
            port,
            path,
            connect_timeout=connect_timeout,
            timeout=timeout,
            auto_flush=auto_flush,
        )

    @property
    def path(self) -> str:
        return self._writer.path

    @property
    def state(self) -> StreamState:
        return self._writer.state

    def add_event(self, object_id: str, event: Event, table: "Table | str | None" = None):
        """
        Append one event for ``object_id``.

        Args:
            object_id: Identifier of the object the event belongs to
            event: Event to send
            table: Target table; required for unbound streams and not
                allowed on bound ones

        Raises:
            ValidationError: If an argument is missing or invalid
            StreamStateError: If the stream is not connected
            TransportError: If the chunk could not be written
        """
        record = self._envelope(object_id, event, table)
        self._writer.append(orjson.dumps(record) + b"\n")

    def _envelope(self, object_id: str, event: Event, table: "Table | str | None") -> Dict[str, Any]:
        if not object_id:
            raise ValidationError("Object identifier required")
        if event is None:
            raise ValidationError("Event required")

        record: Dict[str, Any] = {"id": object_id}
        table_name = _table_name(table)
        if self.table:
            if table is not None:
                raise ValidationError(f"Stream is already bound to table {self.table!r}")
        else:
            if not table_name:
                raise ValidationError("Table required")
            record["table"] = table_name
        record.update(event.serialize())
        return record

    def open(self):
        """Connect and start a new request body."""
        self._writer.open()

    def reconnect(self):
        """Drop the current connection, if any, and start a new request body."""
        self._writer.reconnect()

    def flush(self):
        self._writer.flush()

    def close(self):
        """Terminate the body and wait for the server to acknowledge it."""
        self._writer.close()

    def abort(self):
        self._writer.abort()

    def __enter__(self) -> "EventStream":
        self._writer.__enter__()
        return self

    def __exit__(self, exc_type, exc, tb):
        self._writer.__exit__(exc_type, exc, tb)
