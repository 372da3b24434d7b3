# src/board_relay/sources/publish.py

from __future__ import annotations

"""
Scheduled publishing.

Moves cards from the "source" (staging) column to the "target" column and
publishes them through the configured account, at most once per elapsed
schedule slot.

schedule is a list of "H:M" tokens interpreted on the current UTC day. The quota
is the number of slots whose time is in (last_update, now]; an empty schedule
means no throttling.
"""

import logging
import math
import re
import time
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from ..core.ports import Account, Card, Column
from .base import Source

logger = logging.getLogger(__name__)

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")

MS_PER_HOUR = 3_600_000
MS_PER_MINUTE = 60_000


def _parse_int(raw: str) -> int | None:
    """Leading integer of raw ("07" -> 7, "00}" -> 0, "x" -> None)."""
    m = _LEADING_INT.match(raw)
    return int(m.group(1)) if m else None


def get_utc_hour_minute_date(hour: int, minute: int, *, now: float | None = None) -> int:
    """Epoch milliseconds of hour:minute on the current UTC day. Overflowing values roll over."""
    ts = time.time() if now is None else now
    today = datetime.fromtimestamp(ts, tz=timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    midnight_ms = int(today.timestamp()) * 1000
    return midnight_ms + hour * MS_PER_HOUR + minute * MS_PER_MINUTE


def parse_schedule_token(token: str) -> tuple[int, int] | None:
    """Split an "H:M" token. Not validated beyond "both parts start with digits"."""
    hour_raw, _, minute_raw = str(token).partition(":")
    hour = _parse_int(hour_raw)
    minute = _parse_int(minute_raw)
    if hour is None or minute is None:
        return None
    return hour, minute


class PublishSource(Source):
    required_config = frozenset({"columns", "accountType", "accountName", "schedule"})
    required_columns = frozenset({"source", "target"})
    managed_columns = frozenset({"target"})

    def __init__(self, *args, clock: Callable[[], float] = time.time, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.clock = clock
        # Epoch ms of construction, or of the slot the last successful publish consumed.
        self.last_update: int = self._now_ms()
        self._account: Account | None = None

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    @property
    def account(self) -> Account:
        if self._account is None:
            self._account = self._account_manager.get_account(
                self._config.account_type or "", self._config.account_name or ""
            )
        return self._account

    def _elapsed_slots(self) -> list[int]:
        """Slot timestamps in (last_update, now], oldest first."""
        now_s = self.clock()
        now_ms = int(now_s * 1000)
        slots: list[int] = []
        for token in self._config.schedule:
            parsed = parse_schedule_token(token)
            if parsed is None:
                continue
            slot_ms = get_utc_hour_minute_date(*parsed, now=now_s)
            if self.last_update < slot_ms <= now_ms:
                slots.append(slot_ms)
        return sorted(slots)

    def get_current_quota(self) -> float:
        if not self._config.schedule:
            return math.inf
        return len(self._elapsed_slots())

    def _consume_slot(self) -> None:
        # Advance past the oldest elapsed slot only, so later elapsed slots stay available.
        slots = self._elapsed_slots() if self._config.schedule else []
        self.last_update = slots[0] if slots else self._now_ms()

    async def start(self) -> None:
        await self._board.ready
        check_posts = getattr(self.account, "check_posts", None)
        if check_posts is None:
            return
        source = await self.get_column("source")
        if source is None:
            return
        try:
            await check_posts(source, self.mark_published)
        except Exception:
            logger.exception("Checking already published cards failed")

    async def on_cycle(self) -> None:
        await self.publish_due_cards()

    async def mark_published(self, card: Card, reference: str) -> None:
        """Card turned out to be published already: move it over without using quota."""
        source = await self.get_column("source")
        target = await self.get_column("target")
        if source is not None and target is not None:
            await self._move(card, source, target)
        await card.mark_published(reference)

    async def _move(self, card: Card, source: Column, target: Column) -> None:
        await target.add_card(card)
        await source.remove_card(card)

    async def _ordered_cards(self, column: Column) -> list[Card]:
        cards = list((await column.get_cards()).values())
        is_high_prio = getattr(self.account, "is_card_high_prio", None)
        if is_high_prio is None:
            return cards
        # Stable sort keeps column order within each priority.
        return sorted(cards, key=lambda c: 0 if is_high_prio(c) else 1)

    async def publish_due_cards(self) -> int:
        """Publish while quota lasts. Returns the number of successful publishes."""
        if self.get_current_quota() <= 0:
            return 0

        source = await self.get_column("source")
        target = await self.get_column("target")
        if source is None or target is None:
            logger.warning("Publish columns missing source=%r target=%r",
                           self._config.columns.get("source"), self._config.columns.get("target"))
            return 0

        published = 0
        attempted: set[Any] = set()
        while self.get_current_quota() > 0:
            candidates = await self._ordered_cards(source)
            card = next((c for c in candidates if c.id not in attempted), None)
            if card is None:
                break
            attempted.add(card.id)

            try:
                await self._move(card, source, target)
            except Exception as e:
                logger.exception("Moving card %s to %s failed", card.id, target.name)
                await self._report(card, "Moving card for publishing", e)
                continue

            try:
                reference = await self.account.publish(card)
            except Exception as e:
                logger.exception("Publishing card %s failed", card.id)
                await self._report(card, "Publishing card", e)
                continue

            self._consume_slot()
            published += 1
            logger.info("Published card %s: %s", card.id, reference)
            try:
                await card.mark_published(reference)
            except Exception:
                logger.exception("Marking card %s as published failed", card.id)

        return published

    @staticmethod
    async def _report(card: Card, context: str, error: Exception) -> None:
        try:
            await card.report_error(context, error)
        except Exception:
            logger.exception("Reporting error on card %s failed", card.id)
