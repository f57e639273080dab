"""
Layout Component for Markaz An-noor

Main layout wrapper that combines navigation and page content into a complete
HTML document, or into an HTMX fragment for in-place swaps.
"""

from typing import Any, Dict, Optional

from .base import Component
from .navigation import Navigation


class Layout(Component):
    """Main layout component that assembles the complete page"""

    def __init__(
        self,
        title: str,
        content: str,
        user: Optional[Dict[str, Any]] = None,
        show_nav: bool = True,
        current_path: str = "/",
    ):
        """
        Args:
            title: Page title (will be escaped)
            content: Main content HTML (pre-rendered components)
            user: Current user context from the session (optional)
            show_nav: Whether to show the sidebar
            current_path: Current URL path for active navigation highlighting
        """
        self.title = title
        self.content = content
        self.user = user
        self.show_nav = show_nav
        self.current_path = current_path

    def render(self) -> str:
        nav_html = Navigation(self.user, self.current_path).render() if self.show_nav else ""
        return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{self.escape(self.title)} - Markaz An-noor</title>
    <link rel="stylesheet" href="/static/css/markaz.css">
</head>
<body>
    {nav_html}
    <main id="main-content" class="main-content" role="main">
        {self._main_inner()}
    </main>
</body>
</html>"""

    def render_fragment(self) -> str:
        """Return only the children of <main> for HTMX swaps."""
        return self._main_inner()

    def _main_inner(self) -> str:
        return f"""
        <h1 class="page-title">{self.escape(self.title)}</h1>
        {self.content}"""
