"""Conventional ``{area}/{controller}/{action}/{id?}`` routing for controllers.

A route pattern is a ``/``-separated template whose segments are literals or
parameters. Parameters may declare a default (``{controller=Home}``) or be
optional (``{id?}``); trailing segments with a default or marked optional
may be omitted from the request path.
"""

from __future__ import annotations

import inspect
import re
from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar, Iterable

from fastapi import FastAPI, HTTPException, status
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response

from ..identity.authorization import policy_for
from ..services.registry import ServiceScope
from .templating import render

_SEGMENT_RE = re.compile(r"^\{(?P<name>[A-Za-z_][A-Za-z0-9_]*)(?:(?P<optional>\?)|=(?P<default>[^}]*))?\}$")

_ACTION_ATTR = "__controller_action__"


class RoutePatternError(ValueError):
    """Raised for malformed route templates."""


@dataclass(frozen=True, slots=True)
class RouteSegment:
    name: str | None = None
    literal: str | None = None
    default: str | None = None
    optional: bool = False

    @property
    def omittable(self) -> bool:
        return self.literal is None and (self.optional or self.default is not None)


@dataclass(frozen=True, slots=True)
class RoutePattern:
    template: str
    segments: tuple[RouteSegment, ...]

    @classmethod
    def parse(cls, template: str) -> "RoutePattern":
        segments: list[RouteSegment] = []
        for part in template.strip("/").split("/"):
            if not part:
                raise RoutePatternError(f"empty segment in route template '{template}'")
            if part.startswith("{"):
                match = _SEGMENT_RE.match(part)
                if match is None:
                    raise RoutePatternError(f"invalid parameter segment '{part}'")
                segments.append(
                    RouteSegment(
                        name=match.group("name"),
                        default=match.group("default"),
                        optional=bool(match.group("optional")),
                    )
                )
            else:
                segments.append(RouteSegment(literal=part))
        seen_omittable = False
        for segment in segments:
            if segment.omittable:
                seen_omittable = True
            elif seen_omittable:
                raise RoutePatternError(
                    f"required segment follows an optional one in '{template}'"
                )
        return cls(template=template, segments=tuple(segments))

    def match(self, path: str) -> dict[str, str] | None:
        """Route values for ``path`` or ``None`` when it does not match."""
        trimmed = path.strip("/")
        parts = trimmed.split("/") if trimmed else []
        if len(parts) > len(self.segments):
            return None
        values: dict[str, str] = {}
        for index, segment in enumerate(self.segments):
            if index < len(parts):
                part = parts[index]
                if segment.literal is not None:
                    if part.lower() != segment.literal.lower():
                        return None
                    continue
                values[segment.name] = part  # type: ignore[index]
                continue
            if not segment.omittable:
                return None
            if segment.default is not None:
                values[segment.name] = segment.default  # type: ignore[index]
        return values

    def build(self, **values: Any) -> str:
        """Path for ``values``; trailing segments equal to their default are dropped."""
        parts: list[str] = []
        for segment in self.segments:
            if segment.literal is not None:
                parts.append(segment.literal)
                continue
            value = values.get(segment.name)  # type: ignore[arg-type]
            parts.append("" if value is None else str(value))
        while parts:
            segment = self.segments[len(parts) - 1]
            value = parts[-1]
            if segment.literal is None and (value == "" or value == segment.default):
                parts.pop()
                continue
            break
        return "/" + "/".join(parts)


@dataclass(frozen=True, slots=True)
class ActionSpec:
    name: str
    methods: frozenset[str]


def action(name: str | None = None, *, methods: Iterable[str] = ("GET",)) -> Callable:
    """Expose a controller method as an action."""

    def decorator(func: Callable) -> Callable:
        setattr(
            func,
            _ACTION_ATTR,
            ActionSpec(name=name or func.__name__, methods=frozenset(m.upper() for m in methods)),
        )
        return func

    return decorator


class Controller:
    """Base class for MVC controllers; one instance per request."""

    area: ClassVar[str] = ""
    name: ClassVar[str] = ""

    def __init__(self, request: Request, services: ServiceScope) -> None:
        self.request = request
        self.services = services

    def view(self, action_name: str, context: dict[str, Any] | None = None, *, status_code: int = 200) -> Response:
        template = f"{self.area}/{self.name}/{action_name}.html"
        return render(self.request, template, context, status_code=status_code)

    def redirect_to_action(self, action_name: str, controller: str | None = None, **route_values: Any) -> RedirectResponse:
        target = controller or self.name
        path = self.request.app.state.default_route.build(
            area=route_values.pop("area", self.area),
            controller=target,
            action=action_name,
            **route_values,
        )
        return RedirectResponse(path, status_code=status.HTTP_302_FOUND)

    def not_found(self) -> Response:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)


@dataclass(slots=True)
class _BoundAction:
    controller: type[Controller]
    method_name: str
    spec: ActionSpec


@dataclass
class ControllerRegistry:
    """Index of controller actions by area, controller and action name."""

    _actions: dict[tuple[str, str, str], list[_BoundAction]] = field(default_factory=dict)
    _controllers: dict[tuple[str, str], type[Controller]] = field(default_factory=dict)

    def register(self, controller: type[Controller]) -> type[Controller]:
        key = (controller.area.lower(), controller.name.lower())
        self._controllers[key] = controller
        for method_name, member in inspect.getmembers(controller, predicate=inspect.isfunction):
            spec: ActionSpec | None = getattr(member, _ACTION_ATTR, None)
            if spec is None:
                continue
            self._actions.setdefault((*key, spec.name.lower()), []).append(
                _BoundAction(controller=controller, method_name=method_name, spec=spec)
            )
        return controller

    def find(self, area: str, controller: str, action_name: str) -> list[_BoundAction]:
        return self._actions.get((area.lower(), controller.lower(), action_name.lower()), [])

    def has_controller(self, area: str, controller: str) -> bool:
        return (area.lower(), controller.lower()) in self._controllers

    def methods(self) -> set[str]:
        found: set[str] = set()
        for bound in self._actions.values():
            for item in bound:
                found |= item.spec.methods
        return found or {"GET"}


def map_controller_route(
    app: FastAPI,
    *,
    name: str,
    pattern: str,
    controllers: ControllerRegistry,
) -> RoutePattern:
    """Install a catch-all endpoint dispatching requests through ``pattern``."""

    route_pattern = RoutePattern.parse(pattern)

    async def dispatch(request: Request) -> Response:
        values = route_pattern.match(request.url.path)
        if values is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        area = values.get("area", "")
        controller_name = values.get("controller", "")
        action_name = values.get("action", "")
        candidates = controllers.find(area, controller_name, action_name)
        if not candidates:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        verb = "GET" if request.method == "HEAD" else request.method
        bound = next((c for c in candidates if verb in c.spec.methods), None)
        if bound is None:
            raise HTTPException(status_code=status.HTTP_405_METHOD_NOT_ALLOWED)

        handler = getattr(bound.controller, bound.method_name)
        policy = policy_for(handler, bound.controller)
        if policy is not None:
            policy.evaluate(request)

        request.state.route_values = values
        with request.app.state.services.scope() as scope:
            instance = bound.controller(request, scope)
            method = getattr(instance, bound.method_name)
            kwargs = _action_arguments(method, values)
            if inspect.iscoroutinefunction(method):
                return await method(**kwargs)
            return await run_in_threadpool(method, **kwargs)

    app.add_route(
        "/{path:path}",
        dispatch,
        methods=sorted(controllers.methods()),
        name=name,
        include_in_schema=False,
    )
    return route_pattern


def _action_arguments(method: Callable, values: dict[str, str]) -> dict[str, Any]:
    params = inspect.signature(method).parameters
    kwargs: dict[str, Any] = {}
    for key, param in params.items():
        if key not in values:
            continue
        raw = values[key]
        if param.annotation in (int, "int", "int | None"):
            try:
                kwargs[key] = int(raw)
            except ValueError as exc:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND) from exc
        else:
            kwargs[key] = raw
    return kwargs


__all__ = [
    "Controller",
    "ControllerRegistry",
    "RoutePattern",
    "RoutePatternError",
    "RouteSegment",
    "action",
    "map_controller_route",
]
