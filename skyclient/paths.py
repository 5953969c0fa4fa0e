"""Resource path helpers shared by REST calls and streams."""
from typing import Any
from urllib.parse import quote


def segment(value: Any) -> str:
    """Percent-encode one path segment; ``:`` is kept so timestamps stay readable."""
    return quote(str(value), safe=":")
