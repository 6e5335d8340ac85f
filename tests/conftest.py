"""Shared fixtures: a recording mock of the Open Cloud HTTP API."""

import json
from typing import Callable, List, Optional

import httpx
import pytest

from opencloud import Config, HTTPOverrides

UNIVERSE_ID = 1234
API_KEY = "test-api-key"

Handler = Callable[[httpx.Request], httpx.Response]


class FakeAPI:
    """Routes requests to a handler and records every request it sees."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.handler: Optional[Handler] = None

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.handler is None:
            raise AssertionError(f"Unexpected request: {request.method} {request.url}")
        return self.handler(request)

    def config(self) -> Config:
        return Config(
            api_key=API_KEY,
            universe_id=UNIVERSE_ID,
            overrides=HTTPOverrides(
                base_url="https://apis.test", transport=httpx.MockTransport(self._handle)
            ),
        )

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


def json_body(request: httpx.Request) -> object:
    return json.loads(request.content)


@pytest.fixture
def api() -> FakeAPI:
    return FakeAPI()
