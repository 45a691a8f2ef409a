"""
Pytest configuration and shared fixtures for all tests.
"""

import json
import sys
from pathlib import Path
from urllib.parse import parse_qs

import httpx
import pytest

# Add the project root to sys.path so top-level modules import
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from services.station_service import StationService  # noqa: E402


SAMPLE_RCH = """NAME              : Foz do Sorraia
TIME_UNITS        : DAYS
SERIE_INITIAL_DATA: 1999. 10. 1. 0. 0. 0.

Days  YY    MM  DD  hh  mm  ss    Flow    Level
<BeginTimeSerie>
0.    1999  10  1   0   0   0     12.5    3.1
1.    1999  10  2   0   0   0     13.0    3.2
2.    1999  10  3   0   0   0     14.25   3.3
<EndTimeSerie>
"""


@pytest.fixture
def sample_rch():
    """A small well-formed RCH file."""
    return SAMPLE_RCH


def make_rch(lines, header="Days YY MM DD hh mm ss Flow"):
    """Build RCH content around the given data lines."""
    body = "\n".join(lines)
    return f"NAME : generated\n{header}\n<BeginTimeSerie>\n{body}\n<EndTimeSerie>\n"


class UpstreamRecorder:
    """
    httpx.MockTransport handler that records form posts and answers with a
    canned JSON body (or a status code / exception).
    """

    def __init__(self, body=None, status_code=200, exc=None):
        self.body = body if body is not None else {}
        self.status_code = status_code
        self.exc = exc
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        form = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
        self.requests.append(form)
        if self.exc is not None:
            raise self.exc
        return httpx.Response(
            self.status_code,
            content=json.dumps(self.body),
            headers={"Content-Type": "application/json"},
        )


@pytest.fixture
def make_station_service():
    """Factory: StationService backed by an UpstreamRecorder."""

    def _make(recorder: UpstreamRecorder, **kwargs) -> StationService:
        client = httpx.AsyncClient(transport=httpx.MockTransport(recorder))
        return StationService(client=client, api_url="https://upstream.test/meteo.php", token="secret", **kwargs)

    return _make


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as unit test (no external dependencies)"
    )
