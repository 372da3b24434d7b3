# src/board_relay/sources/issues.py

from __future__ import annotations

"""
Issue synchronization.

Keeps board cards aligned with the tracker: opened items land in the "target"
column, closed items are removed from whatever column holds them. There is no
stored status; the column a card sits in is the state.

Known race: a live "opened" event that fires while the backfill is still running
can call add_issue for the same item concurrently. Both calls re-check column
membership first, so they only collide when neither sees the other's card yet.
No lock is taken here.
"""

import logging

from ..core.ports import Card, Column, Issue
from .base import Source

logger = logging.getLogger(__name__)


class IssuesSource(Source):
    required_columns = frozenset({"target"})

    async def start(self) -> None:
        await self._board.ready
        issues = self._repo.issues
        self._track(issues.subscribe("opened", self._on_opened))
        self._track(issues.subscribe("closed", self.on_closed_issue))
        await self.backfill_issues()

    async def _on_opened(self, issue: Issue) -> None:
        try:
            await self.add_issue(issue)
        except Exception:
            logger.exception("Handling opened issue %s failed", getattr(issue, "number", "?"))

    async def backfill_issues(self) -> None:
        """Reconcile everything that happened before we subscribed: open first, then closed."""
        issues = await self._repo.issues.get_issues()
        for issue in list(issues.values()):
            try:
                await self.add_issue(issue)
            except Exception:
                logger.exception("Backfilling issue %s failed", getattr(issue, "number", "?"))

        closed = await self._repo.issues.get_closed_issues()
        for issue in list(closed.values()):
            await self.on_closed_issue(issue)

        logger.info("Issue backfill done open=%d closed=%d", len(issues), len(closed))

    async def on_closed_issue(self, issue: Issue) -> None:
        try:
            column = await self.handle_card(issue)
            if column is None:
                return
            card = await column.get_card(issue.number)
            if card is None:
                return
            try:
                await column.remove_card(card)
                logger.info("Removed closed issue %s from column %s", issue.number, column.name)
            except Exception as e:
                await card.report_error("Handling closed issue", e)
        except Exception:
            logger.exception("Handling closed issue %s failed", getattr(issue, "id", "?"))

    async def handle_card(self, issue: Issue) -> Column | None:
        """First column outside the managed set that holds the issue."""
        columns = await self._board.get_columns()
        managed = await self._get_managed_columns()
        managed_ids = {c.id for c in managed}

        for column in columns.values():
            if column is None or column.id in managed_ids:
                continue
            if await column.has_issue(issue.number):
                return column
        return None

    async def add_issue(self, issue: Issue, is_closed: bool = False) -> Card | None:
        """
        Place the issue on the board.

        An issue already in some column is re-added there. Otherwise open issues go to
        the target column; closed issues are never newly introduced.
        """
        columns = await self._board.get_columns()
        for column in columns.values():
            if column is not None and await column.has_issue(issue.number):
                return await self._board.add_card(issue, column)

        if is_closed:
            return None

        target = await self.get_column("target")
        if target is None:
            logger.warning("Target column %r not found; issue %s not added",
                           self._config.columns.get("target"), issue.number)
            return None
        return await self._board.add_card(issue, target)
