"""
Shared wiring of the records repository for all API routers.

Why:
    Participation, alerts, admin and reports routers must operate on the same
    repository instance; tests swap it in one place via `set_repo`.

Behavior:
    - The repository is built lazily on first use from RECORDS_BACKEND.
    - `set_repo(None)` resets to a freshly built default on next access.
"""
from __future__ import annotations

import logging
from typing import Optional

from participation.repo_db import build_records_repo
from participation.services import RecordsRepoProtocol, RecordsService

logger = logging.getLogger("markaz.web")

_REPO: Optional[RecordsRepoProtocol] = None


def get_repo() -> RecordsRepoProtocol:
    global _REPO
    if _REPO is None:
        _REPO = build_records_repo()
        logger.info("Records repository: %s", _REPO.__class__.__name__)
    return _REPO


def set_repo(repo: Optional[RecordsRepoProtocol]) -> None:
    """Allow tests to swap the records repository implementation."""
    global _REPO
    _REPO = repo


def get_service() -> RecordsService:
    return RecordsService(get_repo())
