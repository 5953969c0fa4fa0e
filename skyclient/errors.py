"""Exception hierarchy for the Sky client."""


class SkyError(Exception):
    """Base exception for all client failures"""
    pass


class TransportError(SkyError):
    """Raised when the server cannot be reached (DNS, connect, timeout, reset).

    The underlying exception is chained as ``__cause__``.
    """
    pass


class ServerError(SkyError):
    """Raised when the server answers a request with a non-200 status"""

    def __init__(self, message: str, status_code: int | None = None,
                 method: str | None = None, url: str | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.method = method
        self.url = url


class StreamError(SkyError):
    """Raised when an event stream's close handshake is not acknowledged"""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class StreamStateError(StreamError):
    """Raised when a stream operation is attempted outside the connected state"""
    pass


class ValidationError(SkyError, ValueError):
    """Raised for invalid caller input, before any I/O is attempted"""
    pass
