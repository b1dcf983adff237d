from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from starlette.middleware.authentication import AuthenticationMiddleware
from starlette.middleware.httpsredirect import HTTPSRedirectMiddleware
from starlette.middleware.sessions import SessionMiddleware
from starlette.responses import PlainTextResponse

from src.bulkybook.identity.authentication import CookieAuthBackend
from src.bulkybook.identity.cookies import CookieAuthenticationOptions
from src.bulkybook.identity.tokens import TokenService
from src.bulkybook.web.middleware import HSTSMiddleware
from src.bulkybook.web.pipeline import build_middleware, install_middleware


@pytest.fixture
def backend() -> CookieAuthBackend:
    return CookieAuthBackend(TokenService("pipeline-key"), CookieAuthenticationOptions())


@pytest.mark.unit
def test_production_pipeline_order(config_factory, backend) -> None:
    config = config_factory(environment="Production", application={"https_redirection": True})

    stack = build_middleware(config, backend)

    assert [item.cls for item in stack] == [
        HSTSMiddleware,
        HTTPSRedirectMiddleware,
        AuthenticationMiddleware,
        SessionMiddleware,
    ]


@pytest.mark.unit
def test_development_pipeline_skips_hsts(config_factory, backend) -> None:
    config = config_factory(environment="Development", application={"https_redirection": True})

    classes = [item.cls for item in build_middleware(config, backend)]

    assert HSTSMiddleware not in classes
    assert classes == [HTTPSRedirectMiddleware, AuthenticationMiddleware, SessionMiddleware]


@pytest.mark.unit
def test_session_middleware_options(config_factory, backend) -> None:
    config = config_factory(environment="Production")

    session = build_middleware(config, backend)[-1]

    assert session.kwargs["max_age"] == 100 * 60
    assert session.kwargs["https_only"] is True
    assert session.kwargs["session_cookie"] == config.session.cookie_name


@pytest.mark.unit
def test_install_middleware_keeps_first_entry_outermost(config_factory, backend) -> None:
    app = FastAPI()
    stack = build_middleware(config_factory(environment="Production"), backend)

    install_middleware(app, stack)

    assert [item.cls for item in app.user_middleware] == [item.cls for item in stack]


def _hsts_app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(HSTSMiddleware)

    @app.get("/ping")
    def ping() -> PlainTextResponse:
        return PlainTextResponse("pong")

    return app


@pytest.mark.unit
def test_hsts_header_on_https() -> None:
    client = TestClient(_hsts_app(), base_url="https://shop.example")

    response = client.get("/ping")

    assert response.headers["strict-transport-security"] == "max-age=2592000"


@pytest.mark.unit
@pytest.mark.parametrize("base_url", ["http://shop.example", "https://localhost", "https://127.0.0.1"])
def test_hsts_header_skipped(base_url: str) -> None:
    client = TestClient(_hsts_app(), base_url=base_url)

    response = client.get("/ping")

    assert "strict-transport-security" not in response.headers
