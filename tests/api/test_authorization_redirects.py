from __future__ import annotations

from urllib.parse import parse_qs, urlsplit

import pytest

from src.bulkybook.identity.roles import ROLE_EMPLOYEE, ROLE_USER_INDIVIDUAL
from tests.helpers.web_app import ADMIN_EMAIL, ADMIN_PASSWORD, create_user, login


def _redirect(response) -> tuple[str, dict[str, list[str]]]:
    location = urlsplit(response.headers["location"])
    return location.path, parse_qs(location.query)


@pytest.mark.integration
@pytest.mark.parametrize("path", ["/Admin/Category", "/Admin/Category/Create", "/Admin/Product/Index"])
def test_anonymous_request_is_sent_to_login(client, path: str) -> None:
    response = client.get(path, follow_redirects=False)

    assert response.status_code == 302
    target, query = _redirect(response)
    assert target == "/Identity/Account/Login"
    assert query["ReturnUrl"] == [path]


@pytest.mark.integration
def test_signed_in_user_without_role_is_denied(app, client) -> None:
    create_user(app, email="reader@example.com", roles=(ROLE_USER_INDIVIDUAL,))
    assert login(client, "reader@example.com").status_code == 302

    response = client.get("/Admin/Category", follow_redirects=False)

    assert response.status_code == 302
    target, query = _redirect(response)
    assert target == "/Identity/Account/AccessDenied"
    assert query["ReturnUrl"] == ["/Admin/Category"]
    denied = client.get(response.headers["location"])
    assert denied.status_code == 403
    assert "Access denied" in denied.text


@pytest.mark.integration
def test_seeded_admin_can_manage_categories(client) -> None:
    assert login(client, ADMIN_EMAIL, ADMIN_PASSWORD).status_code == 302

    listing = client.get("/Admin/Category")
    assert listing.status_code == 200
    for name in ("Action", "SciFi", "History"):
        assert name in listing.text

    created = client.post(
        "/Admin/Category/Create",
        data={"name": "Poetry", "display_order": "4"},
        follow_redirects=False,
    )
    assert created.status_code == 302
    assert created.headers["location"] == "/Admin/Category"
    assert "Poetry" in client.get("/Admin/Category").text


@pytest.mark.integration
def test_category_validation_errors(client) -> None:
    login(client, ADMIN_EMAIL, ADMIN_PASSWORD)

    response = client.post("/Admin/Category/Create", data={"name": "", "display_order": "abc"})

    assert response.status_code == 400
    assert "Name is required." in response.text
    assert "Display order must be a number." in response.text


@pytest.mark.integration
def test_employee_reaches_products_but_not_categories(app, client) -> None:
    create_user(app, email="staff@example.com", roles=(ROLE_EMPLOYEE,))
    login(client, "staff@example.com")

    assert client.get("/Admin/Product", follow_redirects=False).status_code == 200
    denied = client.get("/Admin/Category", follow_redirects=False)
    assert _redirect(denied)[0] == "/Identity/Account/AccessDenied"


@pytest.mark.integration
def test_tampered_auth_cookie_is_treated_as_anonymous(client) -> None:
    client.cookies.set(".BulkyBook.Identity", "not-a-token")

    response = client.get("/Admin/Category", follow_redirects=False)

    assert _redirect(response)[0] == "/Identity/Account/Login"


@pytest.mark.integration
def test_logout_clears_authentication(client) -> None:
    login(client, ADMIN_EMAIL, ADMIN_PASSWORD)
    assert client.get("/Admin/Category", follow_redirects=False).status_code == 200

    response = client.post("/Identity/Account/Logout", follow_redirects=False)

    assert response.status_code == 302
    assert response.headers["location"] == "/"
    assert _redirect(client.get("/Admin/Category", follow_redirects=False))[0] == "/Identity/Account/Login"
