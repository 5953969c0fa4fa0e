"""Shared fixtures: a threaded fake Sky server speaking just enough HTTP."""
import socketserver
import threading
from dataclasses import dataclass, field
from http import HTTPStatus
from urllib.parse import unquote

import orjson
import pytest

from skyclient import Client
from skyclient.metrics import collector


@dataclass
class RecordedRequest:
    method: str
    path: str
    version: str
    headers: dict
    chunks: list = field(default_factory=list)
    body: bytes = b""
    raw: bytes = b""


class FakeSkyHandler(socketserver.StreamRequestHandler):
    """Reads one request (plain or chunked), answers it, and closes."""

    def handle(self):
        raw = bytearray()

        def readline() -> bytes:
            line = self.rfile.readline(65537)
            raw.extend(line)
            return line

        def read(size: int) -> bytes:
            data = self.rfile.read(size)
            raw.extend(data)
            return data

        request_line = readline().decode("latin-1").rstrip("\r\n")
        if not request_line:
            return
        method, target, version = request_line.split(" ", 2)

        headers = {}
        while True:
            line = readline().decode("latin-1").rstrip("\r\n")
            if not line:
                break
            name, _, value = line.partition(":")
            headers[name.strip().lower()] = value.strip()

        record = RecordedRequest(method=method, path=unquote(target), version=version, headers=headers)
        if headers.get("transfer-encoding") == "chunked":
            while True:
                size_line = readline()
                if not size_line:
                    # client dropped the connection mid-body
                    return
                size = int(size_line.strip(), 16)
                payload = read(size)
                read(2)
                if size == 0:
                    break
                record.chunks.append(payload)
        else:
            record.body = read(int(headers.get("content-length", 0)))
        record.raw = bytes(raw)
        self.server.requests.append(record)

        if self.server.stall:
            self.server.release.wait(10)
            return

        status, body = self.server.route(record)
        reason = HTTPStatus(status).phrase
        self.wfile.write(
            f"HTTP/1.0 {status} {reason}\r\n"
            "Content-Type: application/json\r\n"
            f"Content-Length: {len(body)}\r\n"
            "\r\n".encode("latin-1") + body
        )


class FakeSkyServer(socketserver.ThreadingTCPServer):
    daemon_threads = True
    allow_reuse_address = True

    def __init__(self, address):
        super().__init__(address, FakeSkyHandler)
        self.requests: list[RecordedRequest] = []
        self.tables: set[str] = set()
        self.events: dict[tuple[str, str], list[dict]] = {}
        self.stream_status = 200
        self.stall = False
        self.release = threading.Event()

    @property
    def port(self) -> int:
        return self.server_address[1]

    def route(self, request: RecordedRequest) -> tuple[int, bytes]:
        parts = [p for p in request.path.split("/") if p]
        method = request.method

        is_stream = method == "PATCH" and (
            parts == ["events"] or (len(parts) == 3 and parts[0] == "tables" and parts[2] == "events")
        )
        if is_stream:
            bound = parts[1] if len(parts) == 3 else None
            for chunk in request.chunks:
                # writer tests send opaque payloads; only event records are stored
                try:
                    record = orjson.loads(chunk)
                except orjson.JSONDecodeError:
                    continue
                if not isinstance(record, dict) or "id" not in record:
                    continue
                table = bound or record.get("table")
                if table is None:
                    continue
                self.events.setdefault((table, record["id"]), []).append(
                    {"timestamp": record["timestamp"], "data": record["data"]}
                )
            return self.stream_status, b""

        if parts == ["ping"]:
            return 200, b"{}"

        if parts == ["tables"]:
            if method == "GET":
                return 200, orjson.dumps([{"name": name} for name in sorted(self.tables)])
            if method == "POST":
                name = orjson.loads(request.body)["name"]
                self.tables.add(name)
                return 200, orjson.dumps({"name": name})

        if len(parts) == 2 and parts[0] == "tables":
            name = parts[1]
            if name not in self.tables:
                return 404, orjson.dumps({"message": "Table not found"})
            if method == "GET":
                return 200, orjson.dumps({"name": name})
            if method == "DELETE":
                self.tables.discard(name)
                return 200, b""

        if len(parts) == 5 and parts[0] == "tables" and parts[2] == "objects" and parts[4] == "events":
            events = sorted(self.events.get((parts[1], parts[3]), []), key=lambda e: e["timestamp"])
            return 200, orjson.dumps(events)

        return 404, b"not found"


@pytest.fixture
def sky_server():
    """Run a fake Sky server on an ephemeral loopback port."""
    server = FakeSkyServer(("127.0.0.1", 0))
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server
    server.release.set()
    server.shutdown()
    server.server_close()


@pytest.fixture
def client(sky_server):
    """Client pointed at the fake server."""
    with Client(host="127.0.0.1", port=sky_server.port, timeout=5, stream_timeout=5) as c:
        yield c


@pytest.fixture(autouse=True)
def reset_metrics():
    collector.reset()
    yield
