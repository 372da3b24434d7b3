# src/board_relay/sources/base.py

from __future__ import annotations

"""
Source contract.

A source is one integration that keeps part of the board up to date (issue sync,
scheduled publishing, forum threads, ...). Each source type declares:
- required_config: keys its config entry must contain (always includes "columns"),
- required_columns: column roles that must be named under "columns",
- managed_columns: roles whose columns it owns exclusively.

Lifecycle is two-phase: the constructor only stores dependencies, start() does the
subscribing/backfilling, stop() releases subscriptions. on_cycle() runs once per
scheduler tick.
"""

import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from ..core.ports import AccountManager, Board, Column, Repository
from ..events import Subscription

logger = logging.getLogger(__name__)

BASE_REQUIRED_CONFIG: frozenset[str] = frozenset({"columns"})

ManagedColumnsGetter = Callable[[], Awaitable[Sequence[Column]]]


@dataclass(frozen=True, slots=True)
class SourceConfig:
    """Read-only view of one entry of the sources file."""

    type: str
    columns: Mapping[str, str]
    schedule: tuple[str, ...] = ()
    account_type: str | None = None
    account_name: str | None = None
    raw: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, entry: Mapping[str, Any]) -> SourceConfig:
        columns = entry.get("columns")
        schedule = entry.get("schedule") or ()
        return cls(
            type=str(entry.get("type", "")),
            columns=MappingProxyType(dict(columns) if isinstance(columns, Mapping) else {}),
            schedule=tuple(str(s) for s in schedule),
            account_type=entry.get("accountType"),
            account_name=entry.get("accountName"),
            raw=MappingProxyType(dict(entry)),
        )

    def has(self, key: str) -> bool:
        return key in self.raw

    def get(self, key: str, default: Any = None) -> Any:
        return self.raw.get(key, default)


class Source:
    required_config: frozenset[str] = BASE_REQUIRED_CONFIG
    required_columns: frozenset[str] = frozenset()
    managed_columns: frozenset[str] = frozenset()

    def __init__(
            self,
            repo: Repository,
            account_manager: AccountManager,
            board: Board,
            config: SourceConfig,
            get_managed_columns: ManagedColumnsGetter,
    ) -> None:
        self._repo = repo
        self._account_manager = account_manager
        self._board = board
        self._config = config
        self._get_managed_columns = get_managed_columns
        self._subscriptions: list[Subscription] = []

    @property
    def config(self) -> SourceConfig:
        return self._config

    async def get_column(self, role: str) -> Column | None:
        """Resolve a column role ("target", "source", ...) to the live Column."""
        await self._board.ready
        columns = await self._board.get_columns()
        column_ids = await self._board.get_column_ids()
        column_id = column_ids.get(self._config.columns.get(role))
        return columns.get(column_id)

    def _track(self, sub: Subscription) -> Subscription:
        self._subscriptions.append(sub)
        return sub

    async def start(self) -> None:
        return

    async def on_cycle(self) -> None:
        return

    async def stop(self) -> None:
        subs, self._subscriptions = self._subscriptions, []
        for sub in subs:
            sub.unsubscribe()
        if subs:
            logger.debug("%s released %d subscription(s)", type(self).__name__, len(subs))


SourceFactory = Callable[[Repository, AccountManager, Board, SourceConfig, ManagedColumnsGetter], Source]


@dataclass(frozen=True, slots=True)
class SourceDescriptor:
    """Registry entry: what a source type needs and how to build it."""

    type: str
    factory: SourceFactory
    required_config: frozenset[str] = BASE_REQUIRED_CONFIG
    required_columns: frozenset[str] = frozenset()
    managed_columns: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        if "columns" not in self.required_config:
            object.__setattr__(self, "required_config", self.required_config | BASE_REQUIRED_CONFIG)

    @classmethod
    def for_class(cls, source_type: str, source_cls: type[Source]) -> SourceDescriptor:
        return cls(
            type=source_type,
            factory=source_cls,
            required_config=frozenset(source_cls.required_config),
            required_columns=frozenset(source_cls.required_columns),
            managed_columns=frozenset(source_cls.managed_columns),
        )
