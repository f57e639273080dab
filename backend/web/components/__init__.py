# Markaz An-noor Component System
# Pure Python components for escaped HTML generation

from .base import Component
from .layout import Layout
from .login import LoginForm
from .navigation import Navigation
from .tables import DataTable, InsightList, StatGrid

__all__ = [
    "Component",
    "DataTable",
    "InsightList",
    "Layout",
    "LoginForm",
    "Navigation",
    "StatGrid",
]
