"""
Route access control: which role may render which screen, and where to send
everyone else.

Why:
    Every page request goes through a single decision: render it, redirect the
    user to their landing screen, or show the login surface. Keeping that
    decision a pure function of (route table, role, path) lets the web
    middleware stay thin and lets tests exercise the whole policy with a
    literal table.

Design:
    - The route table is built once at import and is immutable.
    - Unknown routes and unknown roles are "not allowed" (fail-closed).
    - Building a table whose landing route is not permitted for its role, or
      whose route has no roles at all, raises `RouteTableError` so the mistake
      surfaces at startup instead of as a redirect loop.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Union

from .domain import ALLOWED_ROLES

ENTRY_ROUTE = "/"


class RouteTableError(ValueError):
    """Raised when a route table violates its consistency rules."""


@dataclass(frozen=True)
class Allow:
    """Render the requested route."""


@dataclass(frozen=True)
class RedirectTo:
    """Send the user to `target` instead of the requested route."""

    target: str


@dataclass(frozen=True)
class Unauthenticated:
    """No principal: render the login surface."""


NavigationDecision = Union[Allow, RedirectTo, Unauthenticated]


def normalize_route(route: object) -> str:
    """Strip query/fragment and a trailing slash; keep the root as "/"."""
    if not isinstance(route, str) or not route:
        return ""
    path = route.split("?", 1)[0].split("#", 1)[0]
    if len(path) > 1:
        path = path.rstrip("/") or ENTRY_ROUTE
    return path


def _freeze_permissions(permissions: Mapping[str, Iterable[str]]) -> Mapping[str, frozenset]:
    frozen = {}
    for route, roles in permissions.items():
        frozen[normalize_route(route)] = frozenset(roles)
    return MappingProxyType(frozen)


@dataclass(frozen=True)
class RouteTable:
    """Immutable mapping of routes to permitted roles plus per-role landing routes."""

    permissions: Mapping[str, frozenset] = field(default_factory=dict)
    landing_routes: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "permissions", _freeze_permissions(self.permissions))
        object.__setattr__(
            self,
            "landing_routes",
            MappingProxyType({role: normalize_route(route) for role, route in self.landing_routes.items()}),
        )
        self._validate()

    def _validate(self) -> None:
        for route, roles in self.permissions.items():
            if not route.startswith("/"):
                raise RouteTableError(f"invalid_route:{route!r}")
            if not roles:
                raise RouteTableError(f"route_without_roles:{route}")
            unknown = roles - ALLOWED_ROLES
            if unknown:
                raise RouteTableError(f"unknown_roles:{route}:{','.join(sorted(unknown))}")
        missing = ALLOWED_ROLES - set(self.landing_routes)
        if missing:
            raise RouteTableError(f"missing_landing_route:{','.join(sorted(missing))}")
        for role, route in self.landing_routes.items():
            if role not in ALLOWED_ROLES:
                raise RouteTableError(f"unknown_role:{role}")
            if route == ENTRY_ROUTE:
                # The entry route always redirects; landing there would loop.
                raise RouteTableError(f"landing_route_is_entry:{role}")
            if role not in self.permissions.get(route, frozenset()):
                raise RouteTableError(f"landing_route_not_permitted:{role}:{route}")

    def default_route_for(self, role: str) -> str:
        """Return the landing route for `role`; raises `LookupError` for unknown roles."""
        try:
            return self.landing_routes[role]
        except KeyError:
            raise LookupError(f"unknown_role:{role}") from None

    def is_route_allowed(self, route: object, role: Optional[str]) -> bool:
        if not role or role not in ALLOWED_ROLES:
            return False
        roles = self.permissions.get(normalize_route(route))
        if not roles:
            return False
        return role in roles

    def resolve_navigation(self, current_route: object, role: Optional[str]) -> NavigationDecision:
        # An unknown role has no landing route to fall back to; treat it like
        # a missing principal.
        if not role or role not in self.landing_routes:
            return Unauthenticated()
        path = normalize_route(current_route)
        if path == ENTRY_ROUTE or not self.is_route_allowed(path, role):
            return RedirectTo(self.default_route_for(role))
        return Allow()

    def routes_for(self, role: Optional[str]) -> list[str]:
        """Routes a role may open, in table order (used for navigation menus)."""
        return [route for route in self.permissions if route != ENTRY_ROUTE and self.is_route_allowed(route, role)]


ROUTE_PERMISSIONS: Mapping[str, Iterable[str]] = {
    "/": ("admin", "staff", "student"),
    "/admin": ("admin",),
    "/students": ("admin", "staff"),
    "/activities": ("admin", "staff"),
    "/participation": ("admin", "staff"),
    "/alerts": ("admin", "staff"),
    "/reports": ("admin",),
    "/progress": ("student",),
}

ROLE_LANDING_ROUTES: Mapping[str, str] = {
    "admin": "/admin",
    "staff": "/students",
    "student": "/progress",
}

ROUTE_TABLE = RouteTable(permissions=ROUTE_PERMISSIONS, landing_routes=ROLE_LANDING_ROUTES)


def default_route_for(role: str, *, table: RouteTable = ROUTE_TABLE) -> str:
    return table.default_route_for(role)


def is_route_allowed(route: object, role: Optional[str], *, table: RouteTable = ROUTE_TABLE) -> bool:
    return table.is_route_allowed(route, role)


def resolve_navigation(current_route: object, role: Optional[str], *, table: RouteTable = ROUTE_TABLE) -> NavigationDecision:
    return table.resolve_navigation(current_route, role)


__all__ = [
    "Allow",
    "ENTRY_ROUTE",
    "NavigationDecision",
    "RedirectTo",
    "ROLE_LANDING_ROUTES",
    "ROUTE_PERMISSIONS",
    "ROUTE_TABLE",
    "RouteTable",
    "RouteTableError",
    "Unauthenticated",
    "default_route_for",
    "is_route_allowed",
    "normalize_route",
    "resolve_navigation",
]
