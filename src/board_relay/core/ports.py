# src/board_relay/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

Sources depend on these Protocols, never on a concrete tracker, board or
publishing platform. Real clients live outside this package; tests use the
in-memory fakes.
"""

from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Protocol

from ..events import EventCallback, Subscription


class Issue(Protocol):
    """An item of the external tracker."""
    id: Any
    number: int
    title: str


class IssueCollection(Protocol):
    """
    Tracker items plus their lifecycle events ("opened", "closed").

    get_issues / get_closed_issues map an item key to the item.
    """
    def subscribe(self, event: str, callback: EventCallback) -> Subscription: ...
    def get_issues(self) -> Awaitable[Mapping[Any, Issue]]: ...
    def get_closed_issues(self) -> Awaitable[Mapping[Any, Issue]]: ...


class Repository(Protocol):
    issues: IssueCollection


class Card(Protocol):
    id: Any
    issue: Issue | None

    def report_error(self, context: str, error: BaseException) -> Awaitable[None]: ...
    def mark_published(self, reference: str) -> Awaitable[None]: ...


class Column(Protocol):
    id: Any
    name: str

    def has_issue(self, number: int) -> Awaitable[bool]: ...
    def get_card(self, number: int) -> Awaitable[Card | None]: ...
    def get_cards(self) -> Awaitable[Mapping[Any, Card]]: ...
    def add_card(self, card: Card) -> Awaitable[None]: ...
    def remove_card(self, card: Card) -> Awaitable[None]: ...


class Board(Protocol):
    """
    The project board.

    ready is awaitable any number of times (an asyncio.Future, not a coroutine).
    get_columns maps column id -> Column, get_column_ids maps configured name -> id.
    """
    ready: Awaitable[Any]

    def get_columns(self) -> Awaitable[Mapping[Any, Column]]: ...
    def get_column_ids(self) -> Awaitable[Mapping[str, Any]]: ...
    def add_card(self, issue: Issue, column: Column) -> Awaitable[Card]: ...
    def create_card(self, title: str, body: str, column: Column) -> Awaitable[Card]: ...


MarkPublished = Callable[[Card, str], Awaitable[None]]


class Account(Protocol):
    """
    A content account (microblog, forum, ...).

    Optional capabilities, looked up with getattr by the sources that use them:
    - check_posts(column, mark_published): find cards that were already published
    - is_card_high_prio(card) -> bool: publish these first
    """
    def publish(self, card: Card) -> Awaitable[str]: ...
    def subscribe(self, event: str, callback: EventCallback) -> Subscription: ...


class AccountManager(Protocol):
    def get_account(self, account_type: str, account_name: str) -> Account: ...
