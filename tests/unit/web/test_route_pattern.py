from __future__ import annotations

import pytest

from src.bulkybook.bootstrap import DEFAULT_ROUTE_PATTERN
from src.bulkybook.web.routing import RoutePattern, RoutePatternError


@pytest.fixture
def pattern() -> RoutePattern:
    return RoutePattern.parse(DEFAULT_ROUTE_PATTERN)


@pytest.mark.unit
@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("/", {"area": "Customer", "controller": "Home", "action": "Index"}),
        ("/Admin", {"area": "Admin", "controller": "Home", "action": "Index"}),
        ("/Admin/Category", {"area": "Admin", "controller": "Category", "action": "Index"}),
        ("/Customer/Home/Details/7", {"area": "Customer", "controller": "Home", "action": "Details", "id": "7"}),
        ("/Customer/Home/Privacy/", {"area": "Customer", "controller": "Home", "action": "Privacy"}),
    ],
)
def test_match_fills_defaults(pattern: RoutePattern, path: str, expected: dict[str, str]) -> None:
    assert pattern.match(path) == expected


@pytest.mark.unit
def test_match_rejects_extra_segments(pattern: RoutePattern) -> None:
    assert pattern.match("/Customer/Home/Details/7/extra") is None


@pytest.mark.unit
def test_build_drops_trailing_defaults(pattern: RoutePattern) -> None:
    assert pattern.build(area="Customer", controller="Home", action="Index") == "/"
    assert pattern.build(area="Admin", controller="Category", action="Index") == "/Admin/Category"
    assert pattern.build(area="Customer", controller="Home", action="Details", id=3) == "/Customer/Home/Details/3"


@pytest.mark.unit
def test_literal_segments() -> None:
    pattern = RoutePattern.parse("api/{controller}/{id?}")

    assert pattern.match("/API/books/5") == {"controller": "books", "id": "5"}
    assert pattern.match("/api/books") == {"controller": "books"}
    assert pattern.match("/other/books") is None
    assert pattern.match("/api") is None


@pytest.mark.unit
@pytest.mark.parametrize("template", ["{id?}/{controller}", "a//b", "{bad-name}", "{x"])
def test_invalid_templates(template: str) -> None:
    with pytest.raises(RoutePatternError):
        RoutePattern.parse(template)
