"""
Client-side routes and navigation commands.

State logic never navigates by itself: operations return a ``Navigate`` and
the caller (the view layer) decides when to follow it.
"""

from dataclasses import dataclass, field
from enum import Enum
import re
from urllib.parse import unquote

from wishclient.schemas.auth import SessionStatus


class Route(str, Enum):
    LOGIN = "/login"
    DASHBOARD = "/dashboard"
    WISHLIST = "/wishlist/{id}"
    NOT_FOUND = "*"


PRIVATE_ROUTES = frozenset({Route.DASHBOARD, Route.WISHLIST})

_WISHLIST_PATH = re.compile(r"^/wishlist/(?P<id>[^/]+)/?$")


@dataclass(frozen=True)
class Navigate:
    path: str

    @classmethod
    def to(cls, route: Route, **params: object) -> "Navigate":
        return cls(route.value.format(**params))


@dataclass(frozen=True)
class RouteDecision:
    """What the view layer should do for a requested path."""

    route: Route | None = None
    params: dict[str, str] = field(default_factory=dict)
    redirect: Navigate | None = None
    loading: bool = False


def match(path: str) -> tuple[Route, dict[str, str]] | Navigate:
    normalized = (path or "/").split("?", 1)[0].split("#", 1)[0] or "/"
    if normalized == "/":
        return Navigate.to(Route.DASHBOARD)
    if normalized.rstrip("/") == Route.LOGIN.value:
        return Route.LOGIN, {}
    if normalized.rstrip("/") == Route.DASHBOARD.value:
        return Route.DASHBOARD, {}
    found = _WISHLIST_PATH.match(normalized)
    if found:
        return Route.WISHLIST, {"id": unquote(found.group("id"))}
    return Route.NOT_FOUND, {}


def decide(path: str, status: SessionStatus) -> RouteDecision:
    matched = match(path)
    if isinstance(matched, Navigate):
        return RouteDecision(redirect=matched)
    route, params = matched
    if route in PRIVATE_ROUTES:
        if status is SessionStatus.LOADING:
            return RouteDecision(route=route, params=params, loading=True)
        if status is not SessionStatus.AUTHENTICATED:
            return RouteDecision(redirect=Navigate.to(Route.LOGIN))
    return RouteDecision(route=route, params=params)
