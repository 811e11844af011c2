"""Tests for the Starlette endpoint driving the full redirect/callback round trip."""

from unittest.mock import AsyncMock
from urllib.parse import parse_qs, urlparse

import pytest
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.sessions import SessionMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse
from starlette.routing import Route
from starlette.testclient import TestClient

from authcode.integrations.starlette import OAuth2Endpoint
from authcode.strategy import OAuth2Strategy
from tests.conftest import MockTokenEndpoint


async def login_user(request: Request, user: dict) -> RedirectResponse:
    request.session["user"] = user
    return RedirectResponse("/me", status_code=302)


async def me(request: Request) -> JSONResponse:
    return JSONResponse({"user": request.session.get("user")})


def build_app(endpoint: OAuth2Endpoint) -> Starlette:
    return Starlette(
        routes=[Route("/cb", endpoint), Route("/me", me)],
        middleware=[Middleware(SessionMiddleware, secret_key="test-secret")],
    )


class TestRoundTrip:
    @pytest.fixture
    def token_endpoint(self):
        return MockTokenEndpoint()

    @pytest.fixture
    def on_success(self):
        return AsyncMock(side_effect=login_user)

    @pytest.fixture
    def client(self, make_config, token_endpoint, on_success):
        strategy = OAuth2Strategy(
            make_config(state=True, return_url="http://testserver/cb"),
            AsyncMock(return_value={"id": 1}),
            token_endpoint.token_manager(),
        )
        return TestClient(build_app(OAuth2Endpoint(strategy, on_success)))

    def test_login_round_trip(self, client, token_endpoint, on_success):
        # Act - start the flow
        response = client.get("/cb", follow_redirects=False)

        # Assert - redirected to the authorization server with state
        assert response.status_code == 302
        location = urlparse(response.headers["location"])
        assert f"{location.scheme}://{location.netloc}{location.path}" == (
            "https://idp/authorize"
        )
        state = parse_qs(location.query)["state"][0]

        # Act - authorization server redirects back
        response = client.get(
            "/cb", params={"state": state, "code": "123"}, follow_redirects=False
        )

        # Assert - completion callback ran once and logged the user in
        assert response.status_code == 302
        assert response.headers["location"] == "/me"
        on_success.assert_awaited_once()
        assert on_success.await_args.args[1] == {"id": 1}
        assert len(token_endpoint.requests) == 1
        assert client.get("/me").json() == {"user": {"id": 1}}

    def test_forged_state_is_rejected(self, client, token_endpoint, on_success):
        # Arrange
        client.get("/cb", follow_redirects=False)

        # Act
        response = client.get(
            "/cb", params={"state": "wrong", "code": "123"}, follow_redirects=False
        )

        # Assert
        assert response.status_code == 401
        assert "Invalid state parameter" in response.text
        assert token_endpoint.requests == []
        on_success.assert_not_awaited()

    def test_callback_cannot_be_replayed(self, client, token_endpoint, on_success):
        # Arrange
        response = client.get("/cb", follow_redirects=False)
        state = parse_qs(urlparse(response.headers["location"]).query)["state"][0]
        callback = {"state": state, "code": "123"}
        client.get("/cb", params=callback, follow_redirects=False)

        # Act
        response = client.get("/cb", params=callback, follow_redirects=False)

        # Assert
        assert response.status_code == 401
        on_success.assert_awaited_once()
        assert len(token_endpoint.requests) == 1


class TestResultMapping:
    def test_token_failure_uses_failure_handler(self, make_config):
        # Arrange
        endpoint = MockTokenEndpoint(status_code=400, body={"error": "invalid_grant"})
        on_failure = AsyncMock(
            return_value=RedirectResponse("/login-failed", status_code=302)
        )
        strategy = OAuth2Strategy(
            make_config(), AsyncMock(), endpoint.token_manager()
        )
        client = TestClient(
            build_app(OAuth2Endpoint(strategy, AsyncMock(), on_failure=on_failure))
        )

        # Act
        response = client.get("/cb", params={"code": "123"}, follow_redirects=False)

        # Assert
        assert response.headers["location"] == "/login-failed"
        on_failure.assert_awaited_once()
        assert on_failure.await_args.args[1].status_code == 400

    def test_unresolved_user_defaults_to_401(self, make_config):
        endpoint = MockTokenEndpoint()
        on_success = AsyncMock()
        strategy = OAuth2Strategy(
            make_config(), AsyncMock(return_value=None), endpoint.token_manager()
        )
        client = TestClient(build_app(OAuth2Endpoint(strategy, on_success)))

        response = client.get("/cb", params={"code": "123"})

        assert response.status_code == 401
        assert response.text == "Unauthorized"
        on_success.assert_not_awaited()

    def test_unresolved_user_uses_custom_handler(self, make_config):
        endpoint = MockTokenEndpoint()
        on_unauthenticated = AsyncMock(
            return_value=JSONResponse({"error": "unknown user"}, status_code=403)
        )
        strategy = OAuth2Strategy(
            make_config(), AsyncMock(return_value=None), endpoint.token_manager()
        )
        client = TestClient(
            build_app(
                OAuth2Endpoint(
                    strategy, AsyncMock(), on_unauthenticated=on_unauthenticated
                )
            )
        )

        response = client.get("/cb", params={"code": "123"})

        assert response.status_code == 403
        assert response.json() == {"error": "unknown user"}

    def test_state_disabled_works_without_session_middleware(
        self, make_config, token_endpoint
    ):
        # Arrange
        strategy = OAuth2Strategy(
            make_config(),
            AsyncMock(return_value={"id": 7}),
            token_endpoint.token_manager(),
        )

        async def on_success(request, user):
            return JSONResponse(user)

        app = Starlette(routes=[Route("/cb", OAuth2Endpoint(strategy, on_success))])
        client = TestClient(app)

        # Act
        redirect = client.get("/cb", follow_redirects=False)
        response = client.get("/cb", params={"code": "123"})

        # Assert
        assert redirect.status_code == 302
        assert response.json() == {"id": 7}
