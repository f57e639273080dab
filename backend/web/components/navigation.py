"""
Navigation Component for Markaz An-noor

Role-based sidebar. The menu is derived from the route table, so a link is
shown if and only if the navigation guard would let the role open it.
"""

from typing import Any, Dict, List, Optional

from identity_access.access import ROUTE_TABLE, RouteTable

from .base import Component

ROUTE_LABELS: Dict[str, str] = {
    "/admin": "Dashboard",
    "/students": "Students",
    "/activities": "Activities",
    "/participation": "Participation",
    "/alerts": "Alerts",
    "/reports": "Reports",
    "/progress": "My Progress",
}

ROLE_LABELS: Dict[str, str] = {
    "admin": "Administrator",
    "staff": "Staff",
    "student": "Student",
}


class Navigation(Component):
    """Sidebar with the routes the current role may open"""

    def __init__(self, user: Optional[Dict[str, Any]] = None, current_path: str = "/", table: RouteTable = ROUTE_TABLE):
        self.user = user
        self.current_path = current_path
        self.table = table

    def items(self) -> List[str]:
        role = (self.user or {}).get("role")
        return self.table.routes_for(role)

    def _active_href(self, hrefs: List[str]) -> Optional[str]:
        """Best prefix match, so /alerts/123 highlights /alerts."""
        path = self.current_path or "/"
        matches = [h for h in hrefs if path == h or path.startswith(h + "/")]
        return max(matches, key=len) if matches else None

    def render(self) -> str:
        if not self.user:
            return ""
        hrefs = self.items()
        active = self._active_href(hrefs)
        links = [self._link(href, ROUTE_LABELS.get(href, href.strip("/").title()), href == active) for href in hrefs]
        links.append('<a href="/auth/logout" class="sidebar-link sidebar-logout">Sign out</a>')
        role = ROLE_LABELS.get(str(self.user.get("role") or ""), "User")
        return f"""
    <aside class="sidebar" id="sidebar" aria-label="Sidebar">
        <nav class="sidebar-nav" role="navigation" aria-label="Main navigation">
            <div class="sidebar-header"><span class="sidebar-title">Markaz An-noor</span></div>
            <div class="sidebar-items">
                {''.join(links)}
            </div>
            <div class="sidebar-footer">
                <div class="user-name">{self.escape(self.user.get("name") or self.user.get("email"))}</div>
                <div class="user-role">{self.escape(role)}</div>
            </div>
        </nav>
    </aside>"""

    def _link(self, href: str, text: str, is_active: bool) -> str:
        aria = ' aria-current="page"' if is_active else ""
        return (
            f'<a href="{self.escape(href)}" hx-get="{self.escape(href)}" hx-target="#main-content" '
            f'hx-push-url="true" class="{self.classes("sidebar-link", active=is_active)}"{aria}>'
            f"{self.escape(text)}</a>"
        )
