"""
Route access control: role -> screen decisions and route table validation.

The whole policy is a pure function of (route table, role, path), so these
tests use the production table and small literal tables side by side.
"""
from __future__ import annotations

import pytest

from identity_access.access import (
    ROUTE_TABLE,
    Allow,
    RedirectTo,
    RouteTable,
    RouteTableError,
    Unauthenticated,
    default_route_for,
    is_route_allowed,
    normalize_route,
    resolve_navigation,
)
from identity_access.domain import ALLOWED_ROLES, normalize_role


def test_landing_routes_per_role():
    assert default_route_for("admin") == "/admin"
    assert default_route_for("staff") == "/students"
    assert default_route_for("student") == "/progress"


def test_default_route_for_unknown_role_raises():
    with pytest.raises(LookupError):
        default_route_for("parent")


@pytest.mark.parametrize(
    "route,role,expected",
    [
        ("/admin", "admin", True),
        ("/admin", "staff", False),
        ("/reports", "admin", True),
        ("/reports", "staff", False),
        ("/students", "staff", True),
        ("/alerts", "staff", True),
        ("/progress", "student", True),
        ("/progress", "admin", False),
        ("/students", "student", False),
        ("/unknown", "admin", False),
        ("/admin", None, False),
        ("/admin", "superuser", False),
    ],
)
def test_is_route_allowed(route, role, expected):
    assert is_route_allowed(route, role) is expected


def test_missing_role_is_unauthenticated():
    assert resolve_navigation("/admin", None) == Unauthenticated()
    assert resolve_navigation("/admin", "") == Unauthenticated()


def test_unknown_role_is_unauthenticated():
    assert resolve_navigation("/progress", "guardian") == Unauthenticated()


def test_entry_route_redirects_to_landing():
    assert resolve_navigation("/", "admin") == RedirectTo("/admin")
    assert resolve_navigation("/", "staff") == RedirectTo("/students")
    assert resolve_navigation("/", "student") == RedirectTo("/progress")


def test_forbidden_route_redirects_to_landing():
    assert resolve_navigation("/admin", "student") == RedirectTo("/progress")
    assert resolve_navigation("/reports", "staff") == RedirectTo("/students")


def test_unknown_route_redirects_to_landing():
    assert resolve_navigation("/does-not-exist", "admin") == RedirectTo("/admin")


def test_permitted_route_is_allowed():
    assert resolve_navigation("/participation", "staff") == Allow()
    assert resolve_navigation("/progress", "student") == Allow()


def test_query_fragment_and_trailing_slash_are_ignored():
    assert resolve_navigation("/alerts/?status=open", "staff") == Allow()
    assert resolve_navigation("/progress#week", "student") == Allow()
    assert normalize_route("/reports/?x=1") == "/reports"
    assert normalize_route("/") == "/"
    assert normalize_route("") == ""
    assert normalize_route(None) == ""


def test_every_decision_is_consistent_with_the_table():
    """For every role and every route: Allow iff permitted, redirects only to a permitted landing route."""
    for role in sorted(ALLOWED_ROLES):
        landing = ROUTE_TABLE.default_route_for(role)
        assert ROUTE_TABLE.is_route_allowed(landing, role)
        for route in list(ROUTE_TABLE.permissions) + ["/nope"]:
            decision = ROUTE_TABLE.resolve_navigation(route, role)
            if route != "/" and ROUTE_TABLE.is_route_allowed(route, role):
                assert decision == Allow()
            else:
                assert decision == RedirectTo(landing)
                assert decision != RedirectTo(route)


def test_routes_for_follows_table_order_without_entry():
    assert ROUTE_TABLE.routes_for("admin") == ["/admin", "/students", "/activities", "/participation", "/alerts", "/reports"]
    assert ROUTE_TABLE.routes_for("staff") == ["/students", "/activities", "/participation", "/alerts"]
    assert ROUTE_TABLE.routes_for("student") == ["/progress"]
    assert ROUTE_TABLE.routes_for(None) == []


def test_route_table_is_immutable():
    with pytest.raises(TypeError):
        ROUTE_TABLE.permissions["/hack"] = frozenset({"student"})  # type: ignore[index]
    with pytest.raises(TypeError):
        ROUTE_TABLE.landing_routes["student"] = "/admin"  # type: ignore[index]


def _landing(**overrides):
    base = {"admin": "/a", "staff": "/s", "student": "/p"}
    base.update(overrides)
    return base


def _perms(**extra):
    base = {"/a": ("admin",), "/s": ("staff",), "/p": ("student",)}
    base.update(extra)
    return base


def test_custom_table_resolves_against_its_own_routes():
    table = RouteTable(permissions=_perms(), landing_routes=_landing())
    assert resolve_navigation("/p", "student", table=table) == Allow()
    assert resolve_navigation("/a", "student", table=table) == RedirectTo("/p")


def test_landing_route_must_be_permitted_for_its_role():
    with pytest.raises(RouteTableError):
        RouteTable(permissions=_perms(), landing_routes=_landing(student="/a"))


def test_route_without_roles_is_rejected():
    with pytest.raises(RouteTableError):
        RouteTable(permissions=_perms(**{"/empty": ()}), landing_routes=_landing())


def test_every_role_needs_a_landing_route():
    with pytest.raises(RouteTableError):
        RouteTable(permissions=_perms(), landing_routes={"admin": "/a", "staff": "/s"})


def test_unknown_roles_in_table_are_rejected():
    with pytest.raises(RouteTableError):
        RouteTable(permissions=_perms(**{"/x": ("parent",)}), landing_routes=_landing())


def test_entry_route_cannot_be_a_landing_route():
    with pytest.raises(RouteTableError):
        RouteTable(permissions=_perms(**{"/": ("admin", "staff", "student")}), landing_routes=_landing(admin="/"))


def test_normalize_role():
    assert normalize_role(" Admin ") == "admin"
    assert normalize_role("teacher") is None
    assert normalize_role(None) is None
