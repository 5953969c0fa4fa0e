"""Root client: server liveness, table management and unbound streams."""
from contextlib import contextmanager
from typing import Iterator, List

import structlog

from .config import get_settings
from .errors import ValidationError
from .stream.events import EventStream
from .paths import segment
from .table import Table
from .transport import Transport

log = structlog.get_logger()

DEFAULT_PORT = 8585


class Client:
    """
    Entry point for talking to a Sky server.

    The client only holds the server address and a shared transport; every
    stream it opens gets its own connection.
    """

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        timeout: float | None = None,
        connect_timeout: float | None = None,
        stream_timeout: float | None = None,
        transport: Transport | None = None,
    ):
        """
        Initialize the client.

        Args:
            host: Server host (defaults to settings.HOST)
            port: Server port (defaults to settings.PORT)
            timeout: One-shot request timeout in seconds
            connect_timeout: Stream dial timeout in seconds
            stream_timeout: Stream write and handshake deadline in seconds
            transport: Preconfigured transport, mainly for tests. It already
                carries host, port and timeout, so those may not be given too.

        Raises:
            ValidationError: If ``transport`` is combined with host, port or timeout
        """
        settings = get_settings()
        if transport is not None:
            if host is not None or port is not None or timeout is not None:
                raise ValidationError("host, port and timeout cannot be combined with a transport")
        else:
            transport = Transport(host=host, port=port, timeout=timeout)
        self.transport = transport
        self.connect_timeout = connect_timeout if connect_timeout is not None else settings.CONNECT_TIMEOUT
        self.stream_timeout = stream_timeout if stream_timeout is not None else settings.STREAM_TIMEOUT

    @property
    def host(self) -> str:
        return self.transport.host

    @property
    def port(self) -> int:
        return self.transport.port

    def ping(self) -> bool:
        """Check whether the server is reachable and healthy."""
        return self.transport.ping()

    # Tables

    def get_tables(self) -> List[Table]:
        tables = self.transport.send("GET", "/tables", response_model=List[Table]) or []
        return [table.bind(self) for table in tables]

    def get_table(self, name: str) -> Table:
        """
        Retrieve a single table.

        Raises:
            ValidationError: If ``name`` is empty
            ServerError: If the table does not exist
        """
        if not name:
            raise ValidationError("Table name required")
        table = self.transport.send("GET", f"/tables/{segment(name)}", response_model=Table)
        return (table or Table(name=name)).bind(self)

    def create_table(self, table: Table | str) -> Table:
        if isinstance(table, str):
            table = Table(name=table)
        if table is None or not table.name:
            raise ValidationError("Table required")
        created = self.transport.send("POST", "/tables", {"name": table.name}, response_model=Table)
        if created is not None:
            table.name = created.name
        log.info("table.created", table=table.name)
        return table.bind(self)

    def delete_table(self, table: Table | str):
        name = table.name if isinstance(table, Table) else table
        if not name:
            raise ValidationError("Table required")
        self.transport.send("DELETE", f"/tables/{segment(name)}")
        log.info("table.deleted", table=name)

    # Streaming

    def new_stream(self, table: Table | str | None = None, **kwargs) -> EventStream:
        """Build an unconnected stream to this client's server."""
        kwargs.setdefault("connect_timeout", self.connect_timeout)
        kwargs.setdefault("timeout", self.stream_timeout)
        return EventStream(self.host, self.port, table=table, **kwargs)

    def open_stream(self, **kwargs) -> EventStream:
        """Open a connected stream whose events each name their table."""
        stream = self.new_stream(**kwargs)
        stream.open()
        return stream

    @contextmanager
    def stream(self, **kwargs) -> Iterator[EventStream]:
        """Yield an unbound stream, closing it with the server handshake on exit."""
        with self.open_stream(**kwargs) as stream:
            yield stream

    def close(self):
        self.transport.close()

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, *exc_info):
        self.close()
