from typing import Any, Callable

import httpx
import pytest

from authcode.models.config import StrategyConfig
from authcode.services.tokens import OAuth2TokenManager

TOKEN_BODY = {
    "access_token": "tok",
    "token_type": "bearer",
    "expires_in": 3600,
    "scope": "read",
}


class FakeRequest:
    """Minimal request exposing query parameters and a session."""

    def __init__(self, query_params: dict[str, str] | None = None, session=None):
        self.query_params = query_params or {}
        self.session = {} if session is None else session


class MockTokenEndpoint:
    """Token endpoint backed by httpx.MockTransport that records requests."""

    def __init__(self, status_code: int = 200, body: Any = TOKEN_BODY):
        self.status_code = status_code
        self.body = body
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if isinstance(self.body, dict):
            return httpx.Response(self.status_code, json=self.body)
        return httpx.Response(self.status_code, text=self.body)

    def token_manager(self) -> OAuth2TokenManager:
        client = httpx.AsyncClient(transport=httpx.MockTransport(self.handler))
        return OAuth2TokenManager(http_client=client)


@pytest.fixture
def make_config() -> Callable[..., StrategyConfig]:
    def _make_config(**overrides) -> StrategyConfig:
        values = {
            "authorize_url": "https://idp/authorize",
            "token_url": "https://idp/token",
            "client_id": "abc",
            "client_secret": "s3cret",
            "return_url": "https://app/cb",
        }
        values.update(overrides)
        return StrategyConfig(**values)

    return _make_config


@pytest.fixture
def token_endpoint() -> MockTokenEndpoint:
    return MockTokenEndpoint()
