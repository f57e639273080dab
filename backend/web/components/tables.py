"""Tabular and summary building blocks for the dashboard pages."""

from typing import Any, List, Mapping, Optional, Sequence, Tuple

from .base import Component


class DataTable(Component):
    """Table whose columns are the keys of the first row (same rule as CSV export)."""

    def __init__(self, rows: Sequence[Mapping[str, Any]], empty_text: str = "No records yet.", caption: Optional[str] = None):
        self.rows = rows
        self.empty_text = empty_text
        self.caption = caption

    def render(self) -> str:
        if not self.rows:
            return f'<p class="text-muted empty-state">{self.escape(self.empty_text)}</p>'
        headers = list(self.rows[0].keys())
        head = "".join(f"<th scope=\"col\">{self.escape(h)}</th>" for h in headers)
        body = "".join(
            "<tr>" + "".join(f"<td>{self.escape(row.get(h))}</td>" for h in headers) + "</tr>"
            for row in self.rows
        )
        caption = f"<caption>{self.escape(self.caption)}</caption>" if self.caption else ""
        return f'<table class="data-table">{caption}<thead><tr>{head}</tr></thead><tbody>{body}</tbody></table>'


class StatGrid(Component):
    """Row of labelled numbers (dashboard cards)."""

    def __init__(self, stats: Sequence[Tuple[str, Any]]):
        self.stats = stats

    def render(self) -> str:
        cards: List[str] = []
        for label, value in self.stats:
            cards.append(
                f'<div class="stat-card"><div class="stat-value">{self.escape(value)}</div>'
                f'<div class="stat-label">{self.escape(label)}</div></div>'
            )
        return f'<section class="stat-grid">{"".join(cards)}</section>'


class InsightList(Component):
    def __init__(self, insights: Sequence[str]):
        self.insights = insights

    def render(self) -> str:
        if not self.insights:
            return ""
        items = "".join(f"<li>{self.escape(text)}</li>" for text in self.insights)
        return f'<ul class="insights">{items}</ul>'
