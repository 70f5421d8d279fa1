"""
Shared pytest fixtures for the fetch pipeline tests.

Provides:
  - ``make_response``: builds a fake requests.Response.
  - ``upstream``: a fake authenticated session routing GETs by URL path.
"""

from typing import Any, Dict
from unittest.mock import MagicMock
from urllib.parse import urlparse

import pytest


def _response(status_code: int = 200, payload: Any = None, json_error: bool = False) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    if json_error:
        response.json.side_effect = ValueError("Expecting value: line 1 column 1 (char 0)")
    else:
        response.json.return_value = payload
    return response


@pytest.fixture
def make_response():
    """Factory for fake responses: make_response(status_code, payload, json_error)."""
    return _response


class FakeSession:
    """Routes session.get() calls to canned responses keyed by URL path."""

    def __init__(self) -> None:
        self.routes: Dict[str, MagicMock] = {}
        self.get = MagicMock(side_effect=self._get)

    def route(self, path: str, payload: Any = None, status_code: int = 200, json_error: bool = False) -> None:
        self.routes[path] = _response(status_code, payload, json_error)

    def _get(self, url: str, **kwargs) -> MagicMock:
        path = urlparse(url).path
        if path not in self.routes:
            return _response(404, {"code": 404})
        return self.routes[path]

    @property
    def requested_paths(self):
        return [urlparse(call.args[0]).path for call in self.get.call_args_list]


@pytest.fixture
def upstream() -> FakeSession:
    """A fake authenticated session with no routes."""
    return FakeSession()
