"""HTTP+JSON request/response transport shared by every one-shot call."""
import time
from functools import lru_cache
from typing import Any

import httpx
import orjson
import structlog
from pydantic import BaseModel, TypeAdapter

from .config import get_settings
from .errors import ServerError, SkyError, TransportError
from .metrics import collector, REQUESTS_TOTAL, REQUEST_LATENCY_MS, ERRORS_TOTAL

log = structlog.get_logger()


@lru_cache(maxsize=64)
def _adapter(response_model: Any) -> TypeAdapter:
    return TypeAdapter(response_model)


def _default(obj: Any) -> Any:
    if isinstance(obj, BaseModel):
        return obj.model_dump(by_alias=True, mode="json")
    raise TypeError(f"Type is not JSON serializable: {type(obj).__name__}")


def _error_message(content: bytes) -> str | None:
    """Best-effort lookup of ``message`` in an error body."""
    try:
        document = orjson.loads(content)
    except orjson.JSONDecodeError:
        return None
    if isinstance(document, dict):
        message = document.get("message")
        if isinstance(message, str):
            return message
    return None


class Transport:
    """
    Sends one JSON request per call to ``http://{host}:{port}{path}``.

    The underlying ``httpx.Client`` is safe to share between threads, so a
    single transport can serve concurrent one-shot calls.
    """

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        timeout: float | None = None,
        http_client: httpx.Client | None = None,
    ):
        """
        Initialize transport.

        Args:
            host: Server host (defaults to settings.HOST)
            port: Server port (defaults to settings.PORT)
            timeout: Request timeout in seconds (defaults to settings.REQUEST_TIMEOUT)
            http_client: Preconfigured httpx client, mainly for tests
        """
        settings = get_settings()
        self.host = host or settings.HOST
        self.port = port or settings.PORT
        self.timeout = timeout if timeout is not None else settings.REQUEST_TIMEOUT
        self._client = http_client or httpx.Client(timeout=self.timeout)

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def send(self, method: str, path: str, body: Any = None, response_model: Any = None) -> Any:
        """
        Send a request and classify the response.

        Args:
            method: HTTP method
            path: Resource path starting with "/"
            body: JSON-serializable request body, or None for no body
            response_model: Type to decode a successful response into

        Returns:
            The decoded response, or None when no model was requested or the
            server returned an empty body

        Raises:
            TransportError: If the request could not be completed
            ServerError: If the server responded with a non-200 status
        """
        method = method.upper()
        url = f"{self.base_url}{path}"
        content = orjson.dumps(body, default=_default) if body is not None else None
        labels = {"method": method}

        log.debug("transport.request", method=method, url=url)
        start_time = time.monotonic()
        collector.increment(REQUESTS_TOTAL, labels=labels)
        try:
            response = self._client.request(
                method,
                url,
                content=content,
                headers={"Content-Type": "application/json"},
            )
        except httpx.TransportError as e:
            collector.increment(ERRORS_TOTAL, labels={"kind": "transport"})
            log.warning("transport.failed", method=method, url=url, error=str(e))
            raise TransportError(f"{method} {url}: {e}") from e
        finally:
            collector.record_latency(REQUEST_LATENCY_MS, start_time, labels=labels)

        if response.status_code != 200:
            collector.increment(ERRORS_TOTAL, labels={"kind": "server"})
            message = _error_message(response.content)
            if message is None:
                message = f"{method} {url} [{response.status_code}]"
            log.warning(
                "transport.server_error",
                method=method,
                url=url,
                status_code=response.status_code,
                message=message,
            )
            raise ServerError(message, status_code=response.status_code, method=method, url=url)

        if response_model is None or not response.content.strip():
            return None
        return _adapter(response_model).validate_python(orjson.loads(response.content))

    def ping(self) -> bool:
        """Return True if ``GET /ping`` completes without error."""
        try:
            self.send("GET", "/ping")
        except SkyError:
            return False
        return True

    def close(self):
        """Close the underlying HTTP client."""
        self._client.close()

    def __enter__(self) -> "Transport":
        return self

    def __exit__(self, *exc_info):
        self.close()
