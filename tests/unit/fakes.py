"""Test doubles for overpass_client unit tests.

Provides a scripted transport, a recording sleep function, a manual clock
and an httpx response builder.
"""

from typing import Any, Iterable, Optional
from unittest.mock import MagicMock

import httpx

from overpass_client.resilience.models import TransportFailure

# ---------------------------------------------------------------------------
# Sample payloads
# ---------------------------------------------------------------------------

SAMPLE_RESPONSE = {
    "version": 0.6,
    "generator": "Overpass API 0.7.62.1 084b4234",
    "osm3s": {
        "timestamp_osm_base": "2024-06-01T12:00:00Z",
        "copyright": "The data included in this document is from www.openstreetmap.org.",
    },
    "elements": [
        {
            "type": "node",
            "id": 123,
            "lat": 52.52,
            "lon": 13.405,
            "tags": {"amenity": "cafe", "name": "Cafe Test"},
        },
        {
            "type": "way",
            "id": 456,
            "center": {"lat": 52.521, "lon": 13.406},
            "nodes": [1, 2, 3],
            "tags": {"amenity": "restaurant"},
        },
        {
            "type": "relation",
            "id": 789,
            "center": {"lat": 52.522, "lon": 13.407},
            "members": [{"type": "way", "ref": 456, "role": "outer"}],
            "tags": {"tourism": "museum"},
        },
    ],
}

BAD_REQUEST_BODY = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    "<body>\n"
    '<p><strong style="color:#FF0000">Error</strong>: line 1: parse error: '
    "Unknown type &quot;nod&quot; </p>\n"
    "</body>"
)


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


def failure(
    status_code: Optional[int] = None,
    status_text: Optional[str] = None,
    headers: Optional[dict] = None,
    body: str = "",
) -> TransportFailure:
    """Build a TransportFailure for scripting."""
    return TransportFailure(
        status_code=status_code,
        status_text=status_text,
        headers=headers,
        body=body,
    )


class ScriptedTransport:
    """Transport that replays a script of payloads and exceptions."""

    def __init__(self, script: Iterable[Any] = ()):
        self.script = list(script)
        self.calls: list[str] = []

    async def send(self, body: str) -> Any:
        self.calls.append(body)
        if not self.script:
            raise AssertionError("ScriptedTransport ran out of responses")
        item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class ManualClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ---------------------------------------------------------------------------
# Mock response builder
# ---------------------------------------------------------------------------


def make_mock_response(
    *,
    status_code: int = 200,
    reason_phrase: str = "OK",
    headers: Optional[dict] = None,
    json_data: Any = None,
    text: str = "",
    raise_json: bool = False,
) -> MagicMock:
    """Build a mock httpx.Response.

    Args:
        status_code: HTTP status code.
        reason_phrase: HTTP reason phrase.
        headers: Response headers dict.
        json_data: JSON body (returned by response.json()).
        text: Plain text body.
        raise_json: If True, response.json() raises ValueError.

    Returns:
        MagicMock configured as an httpx.Response.
    """
    response = MagicMock(spec=httpx.Response)
    response.status_code = status_code
    response.reason_phrase = reason_phrase
    response.headers = headers or {}
    response.text = text

    if raise_json:
        response.json.side_effect = ValueError("No JSON")
    elif json_data is not None:
        response.json.return_value = json_data
    else:
        response.json.return_value = {}

    return response
