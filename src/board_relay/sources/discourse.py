# src/board_relay/sources/discourse.py

from __future__ import annotations

import logging
from typing import Any

from ..core.ports import Account, Card
from .base import Source

logger = logging.getLogger(__name__)


class DiscourseSource(Source):
    """New forum threads become cards in the target column (once per title)."""

    required_config = frozenset({"columns", "accountName"})
    required_columns = frozenset({"target"})

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.discourse: Account | None = None

    @property
    def forum(self) -> str:
        return str(self._config.get("forum") or self._config.account_name or "")

    def get_title(self, thread: Any) -> str:
        return f"{thread.title} ({self.forum})"

    def get_card_content(self, thread: Any) -> str:
        return f"[__{thread.title}__]({thread.slug})\n\n> {thread.excerpt}"

    async def start(self) -> None:
        self.discourse = self._account_manager.get_account("discourse", self._config.account_name or "")
        self._track(self.discourse.subscribe("created", self._on_created))

    async def _on_created(self, thread: Any) -> None:
        try:
            await self.handle_thread(thread)
        except Exception:
            logger.exception("Handling thread %r failed", getattr(thread, "title", "?"))

    async def get_thread(self, thread: Any) -> Any | None:
        """Tracker item (open or closed) already created for this thread."""
        await self._board.ready
        title = self.get_title(thread)
        open_issues = await self._repo.issues.get_issues()
        closed_issues = await self._repo.issues.get_closed_issues()
        for issue in [*open_issues.values(), *closed_issues.values()]:
            if issue.title == title:
                return issue
        return None

    async def add_thread(self, thread: Any) -> Card | None:
        target = await self.get_column("target")
        if target is None:
            logger.warning("Target column %r not found", self._config.columns.get("target"))
            return None
        return await self._board.create_card(self.get_title(thread), self.get_card_content(thread), target)

    async def handle_thread(self, thread: Any) -> Card | None:
        if await self.get_thread(thread) is not None:
            return None
        card = await self.add_thread(thread)
        logger.info("Created card for thread %r", self.get_title(thread))
        return card
