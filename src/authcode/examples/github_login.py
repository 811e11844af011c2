"""
Starlette app that logs users in with GitHub.

You'll need a GitHub OAuth app and these environment variables (a .env file
works too):

    OAUTH2_AUTHORIZE_URL=https://github.com/login/oauth/authorize
    OAUTH2_TOKEN_URL=https://github.com/login/oauth/access_token
    OAUTH2_CLIENT_ID=...
    OAUTH2_CLIENT_SECRET=...
    OAUTH2_RETURN_URL=http://localhost:8000/auth/github
    OAUTH2_SCOPE=read:user
    OAUTH2_STATE=true
    SESSION_SECRET=...
"""

import contextlib
import logging
import os

import httpx
import uvicorn
from dotenv import load_dotenv
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.sessions import SessionMiddleware
from starlette.requests import Request
from starlette.responses import PlainTextResponse, RedirectResponse, Response
from starlette.routing import Route

from authcode.integrations.starlette import OAuth2Endpoint
from authcode.models.config import StrategyConfig
from authcode.models.tokens import OAuth2Token
from authcode.strategy import OAuth2Strategy

logger = logging.getLogger(__name__)


async def resolve_github_user(request: Request, token: OAuth2Token) -> dict | None:
    async with httpx.AsyncClient(timeout=10.0) as client:
        response = await client.get(
            "https://api.github.com/user",
            headers={
                "Authorization": f"Bearer {token.access_token}",
                "Accept": "application/vnd.github+json",
            },
        )
    if response.status_code != 200:
        logger.warning(f"GitHub user lookup failed: {response.status_code}")
        return None

    profile = response.json()
    return {"id": profile["id"], "login": profile["login"]}


async def login_user(request: Request, user: dict) -> Response:
    request.session["user"] = user
    return RedirectResponse("/", status_code=302)


async def homepage(request: Request) -> Response:
    user = request.session.get("user")
    if user is None:
        return PlainTextResponse("Not logged in. Visit /auth/github")
    return PlainTextResponse(f"Hello, {user['login']}")


def create_app() -> Starlette:
    strategy = OAuth2Strategy(StrategyConfig.from_env(), resolve_github_user)

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette):
        yield
        await strategy.close()

    return Starlette(
        routes=[
            Route("/", homepage),
            Route("/auth/github", OAuth2Endpoint(strategy, login_user)),
        ],
        middleware=[
            Middleware(SessionMiddleware, secret_key=os.environ["SESSION_SECRET"]),
        ],
        lifespan=lifespan,
    )


if __name__ == "__main__":
    load_dotenv()
    logging.basicConfig(level=logging.INFO)
    uvicorn.run(create_app(), host="127.0.0.1", port=8000, log_level="info")
