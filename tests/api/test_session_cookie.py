from __future__ import annotations

import base64
import json
import time

import pytest
from itsdangerous import TimestampSigner

from tests.helpers.web_app import TEST_SECRET, add_product

SESSION_COOKIE = ".BulkyBook.Session"


class BackdatedSigner(TimestampSigner):
    """Signs values as if they had been issued ``age_seconds`` ago."""

    def __init__(self, secret_key: str, age_seconds: int) -> None:
        super().__init__(secret_key)
        self.age_seconds = age_seconds

    def get_timestamp(self) -> int:
        return int(time.time()) - self.age_seconds


def _session_cookie(data: dict, *, age_minutes: int) -> str:
    payload = base64.b64encode(json.dumps(data).encode("utf-8"))
    return BackdatedSigner(TEST_SECRET, age_minutes * 60).sign(payload).decode("utf-8")


@pytest.mark.integration
def test_viewing_a_product_issues_http_only_session_cookie(app, client) -> None:
    product_id = add_product(app)

    response = client.get(f"/Customer/Home/Details/{product_id}")

    assert response.status_code == 200
    assert "Dune" in response.text
    cookie = response.headers["set-cookie"]
    assert cookie.startswith(f"{SESSION_COOKIE}=")
    assert "httponly" in cookie.lower()
    assert "max-age=6000" in cookie.lower()
    assert "Recently viewed: 1" in client.get("/").text


@pytest.mark.integration
def test_session_is_renewed_on_each_response(app, client) -> None:
    product_id = add_product(app)
    client.get(f"/Customer/Home/Details/{product_id}")

    response = client.get("/")

    assert "set-cookie" in response.headers
    assert response.headers["set-cookie"].startswith(f"{SESSION_COOKIE}=")


@pytest.mark.integration
def test_session_within_idle_timeout_is_accepted(client) -> None:
    client.cookies.set(SESSION_COOKIE, _session_cookie({"RecentlyViewed": [1, 2]}, age_minutes=99))

    assert "Recently viewed: 2" in client.get("/").text


@pytest.mark.integration
def test_session_is_ignored_after_100_minutes_of_inactivity(client) -> None:
    client.cookies.set(SESSION_COOKIE, _session_cookie({"RecentlyViewed": [1, 2]}, age_minutes=101))

    assert "Recently viewed: 0" in client.get("/").text


@pytest.mark.integration
def test_session_signed_with_another_key_is_ignored(client) -> None:
    payload = base64.b64encode(json.dumps({"RecentlyViewed": [1]}).encode("utf-8"))
    client.cookies.set(SESSION_COOKIE, TimestampSigner("other-secret").sign(payload).decode("utf-8"))

    assert "Recently viewed: 0" in client.get("/").text


@pytest.mark.integration
def test_unknown_product_is_not_found(client) -> None:
    assert client.get("/Customer/Home/Details/999").status_code == 404
    assert client.get("/Customer/Home/Details/abc").status_code == 404
