"""Table handle: schema, event and stream operations scoped to one table."""
from contextlib import contextmanager
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, Iterator, List

from pydantic import BaseModel, PrivateAttr

from .errors import ValidationError
from .models import Event, InsertMode, Property, Stats, insert_method
from .paths import segment
from .stream.events import EventStream
from .timestamps import format_timestamp

if TYPE_CHECKING:
    from .client import Client


class Table(BaseModel):
    """A container for objects and their events."""

    name: str
    _client: Any = PrivateAttr(default=None)

    def bind(self, client: "Client") -> "Table":
        """Attach this table to ``client`` and return it."""
        self._client = client
        return self

    @property
    def client(self) -> "Client":
        if self._client is None:
            raise ValidationError(f"Table {self.name!r} is not bound to a client")
        return self._client

    def _send(self, method: str, path: str, body: Any = None, response_model: Any = None) -> Any:
        if not self.name:
            raise ValidationError("Table name required")
        return self.client.transport.send(
            method, f"/tables/{segment(self.name)}{path}", body, response_model
        )

    # Properties

    def get_properties(self) -> List[Property]:
        return self._send("GET", "/properties", response_model=List[Property]) or []

    def get_property(self, name: str) -> Property | None:
        if not name:
            raise ValidationError("Property name required")
        return self._send("GET", f"/properties/{segment(name)}", response_model=Property)

    def create_property(self, prop: Property) -> Property:
        """Create ``prop`` on the server and refresh it with the assigned id."""
        if prop is None:
            raise ValidationError("Property required")
        created = self._send("POST", "/properties", prop.to_wire(), response_model=Property)
        return _refresh(prop, created)

    def update_property(self, name: str, prop: Property) -> Property:
        """Rename or retype the property currently called ``name``."""
        if not name:
            raise ValidationError("Property name required")
        if prop is None:
            raise ValidationError("Property required")
        updated = self._send("PATCH", f"/properties/{segment(name)}", prop.to_wire(), response_model=Property)
        return _refresh(prop, updated)

    def delete_property(self, prop: Property | str):
        name = prop.name if isinstance(prop, Property) else prop
        if not name:
            raise ValidationError("Property required")
        self._send("DELETE", f"/properties/{segment(name)}")

    # Events

    def get_events(self, object_id: str) -> List[Event]:
        """Fetch every event recorded for ``object_id``, oldest first."""
        _require_object_id(object_id)
        records = self._send(
            "GET", f"/objects/{segment(object_id)}/events", response_model=List[Dict[str, Any]]
        )
        return [Event.deserialize(record) for record in records or []]

    def get_event(self, object_id: str, timestamp: datetime) -> Event | None:
        _require_object_id(object_id)
        record = self._send(
            "GET", _event_path(object_id, timestamp), response_model=Dict[str, Any] | None
        )
        return Event.deserialize(record) if record else None

    def insert_event(self, object_id: str, event: Event, mode: str | InsertMode = InsertMode.MERGE):
        """
        Insert one event. "replace" overwrites an event at the same
        timestamp (PUT); "merge" combines their data (PATCH).

        Raises:
            ValidationError: For a missing argument or unknown mode
        """
        method = insert_method(mode)
        _require_object_id(object_id)
        if event is None:
            raise ValidationError("Event required")
        self._send(method, _event_path(object_id, event.timestamp), event.serialize())

    def delete_event(self, object_id: str, event: Event | datetime):
        _require_object_id(object_id)
        if event is None:
            raise ValidationError("Event required")
        timestamp = event.timestamp if isinstance(event, Event) else event
        self._send("DELETE", _event_path(object_id, timestamp))

    def delete_events(self, object_id: str):
        """Delete every event recorded for ``object_id``."""
        _require_object_id(object_id)
        self._send("DELETE", f"/objects/{segment(object_id)}/events")

    # Analytics

    def stats(self) -> Stats:
        return self._send("GET", "/stats", response_model=Stats) or Stats()

    def query(self, query: Dict[str, Any]) -> Dict[str, Any]:
        """Run a query document and return the raw result."""
        if query is None:
            raise ValidationError("Query required")
        return self._send("POST", "/query", query, response_model=Dict[str, Any]) or {}

    # Streaming

    def open_stream(self, **kwargs) -> EventStream:
        """Open a connected stream bound to this table."""
        if not self.name:
            raise ValidationError("Table name required")
        stream = self.client.new_stream(table=self, **kwargs)
        stream.open()
        return stream

    @contextmanager
    def stream(self, **kwargs) -> Iterator[EventStream]:
        """Yield a table-bound stream, closing it with the server handshake on exit."""
        with self.open_stream(**kwargs) as stream:
            yield stream


def _require_object_id(object_id: str):
    if not object_id:
        raise ValidationError("Object identifier required")


def _event_path(object_id: str, timestamp: datetime) -> str:
    if timestamp is None:
        raise ValidationError("Timestamp required")
    return f"/objects/{segment(object_id)}/events/{segment(format_timestamp(timestamp))}"


def _refresh(prop: Property, source: Property | None) -> Property:
    if source is not None:
        for field in Property.model_fields:
            setattr(prop, field, getattr(source, field))
    return prop
