# tests/test_issues_source.py

from __future__ import annotations

import asyncio

import pytest

from board_relay.sources.base import SourceConfig
from board_relay.sources.issues import IssuesSource

from .fakes import FakeBoard, FakeCard, FakeIssue, no_managed_columns


def make_source(repo, account_manager, board, get_managed_columns=no_managed_columns) -> IssuesSource:
    config = SourceConfig.from_mapping({"type": "issues", "columns": {"target": "Foo"}})
    return IssuesSource(repo, account_manager, board, config, get_managed_columns)


async def _settle() -> None:
    for _ in range(10):
        await asyncio.sleep(0)


def test_constructor_has_no_side_effects(repo, account_manager, board) -> None:
    make_source(repo, account_manager, board)
    assert repo.issues.channel.listener_count("opened") == 0


@pytest.mark.asyncio
async def test_start_subscribes_and_stop_unsubscribes(repo, account_manager, board) -> None:
    source = make_source(repo, account_manager, board)

    await source.start()
    assert repo.issues.channel.listener_count("opened") == 1
    assert repo.issues.channel.listener_count("closed") == 1

    await source.stop()
    assert repo.issues.channel.listener_count("opened") == 0
    assert repo.issues.channel.listener_count("closed") == 0


@pytest.mark.asyncio
async def test_handle_card_in_no_column(repo, account_manager, board) -> None:
    source = make_source(repo, account_manager, board)
    assert await source.handle_card(FakeIssue(1)) is None


@pytest.mark.asyncio
async def test_handle_card_in_column(repo, account_manager, board) -> None:
    source = make_source(repo, account_manager, board)
    bar = board.column("Bar")
    await bar.add_card(FakeCard(issue=FakeIssue(1)))

    assert await source.handle_card(FakeIssue(1)) is bar


@pytest.mark.asyncio
async def test_handle_card_ignores_managed_columns(repo, account_manager, board) -> None:
    done = board.column("Done")

    async def managed():
        return [done]

    source = make_source(repo, account_manager, board, managed)
    await done.add_card(FakeCard(issue=FakeIssue(1)))

    assert await source.handle_card(FakeIssue(1)) is None


@pytest.mark.asyncio
async def test_add_issue_already_in_column(repo, account_manager, board) -> None:
    source = make_source(repo, account_manager, board)
    bar = board.column("Bar")
    existing = FakeCard(issue=FakeIssue(1))
    await bar.add_card(existing)

    card = await source.add_issue(FakeIssue(1))

    assert card is existing
    assert board.add_calls[-1][1] is bar
    assert board.column("Foo").cards == {}


@pytest.mark.asyncio
async def test_add_new_issue_goes_to_target(repo, account_manager, board) -> None:
    source = make_source(repo, account_manager, board)

    card = await source.add_issue(FakeIssue(1), False)

    assert card is not None
    assert card.id in board.column("Foo").cards


@pytest.mark.asyncio
async def test_does_not_add_new_closed_issue(repo, account_manager, board) -> None:
    source = make_source(repo, account_manager, board)

    assert await source.add_issue(FakeIssue(1), True) is None
    assert board.add_calls == []


@pytest.mark.asyncio
async def test_closed_issue_in_place_is_still_updated(repo, account_manager, board) -> None:
    source = make_source(repo, account_manager, board)
    bar = board.column("Bar")
    await bar.add_card(FakeCard(issue=FakeIssue(1)))

    card = await source.add_issue(FakeIssue(1), True)

    assert card is not None
    assert board.add_calls[-1][1] is bar


@pytest.mark.asyncio
async def test_closed_issue_is_removed(repo, account_manager, board) -> None:
    source = make_source(repo, account_manager, board)
    bar = board.column("Bar")
    await bar.add_card(FakeCard(issue=FakeIssue(1)))

    await source.on_closed_issue(FakeIssue(1))

    assert bar.cards == {}


@pytest.mark.asyncio
async def test_remove_failure_is_reported_on_card(repo, account_manager, board) -> None:
    source = make_source(repo, account_manager, board)
    bar = board.column("Bar")
    card = FakeCard(issue=FakeIssue(1))
    await bar.add_card(card)
    bar.fail_remove = True

    await source.on_closed_issue(FakeIssue(1))

    assert card.id in bar.cards
    assert len(card.errors) == 1
    assert card.errors[0][0] == "Handling closed issue"


@pytest.mark.asyncio
async def test_closed_issue_lookup_errors_are_swallowed(repo, account_manager, board, caplog) -> None:
    async def broken():
        raise RuntimeError("board offline")

    source = make_source(repo, account_manager, board, broken)

    await source.on_closed_issue(FakeIssue(1))

    assert "Handling closed issue" in caplog.text


@pytest.mark.asyncio
async def test_backfill_adds_open_and_removes_closed(repo, account_manager, board) -> None:
    bar = board.column("Bar")
    await bar.add_card(FakeCard(issue=FakeIssue(2)))
    await bar.add_card(FakeCard(issue=FakeIssue(3)))
    repo.issues.issues = {1: FakeIssue(1), 3: FakeIssue(3)}
    repo.issues.closed_issues = {2: FakeIssue(2), 4: FakeIssue(4)}

    source = make_source(repo, account_manager, board)
    await source.start()

    foo = board.column("Foo")
    assert [c.issue.number for c in foo.cards.values()] == [1]
    assert [c.issue.number for c in bar.cards.values()] == [3]
    # Closed issue 4 was never on the board and is not introduced.
    assert all(c.issue.number != 4 for c in board.created)


@pytest.mark.asyncio
async def test_live_events(repo, account_manager, board) -> None:
    source = make_source(repo, account_manager, board)
    await source.start()

    await asyncio.gather(*repo.issues.channel.emit("opened", FakeIssue(5)))
    foo = board.column("Foo")
    assert [c.issue.number for c in foo.cards.values()] == [5]

    await asyncio.gather(*repo.issues.channel.emit("closed", FakeIssue(5)))
    assert foo.cards == {}


@pytest.mark.asyncio
async def test_opened_handler_errors_do_not_escape(repo, account_manager, board, caplog) -> None:
    source = make_source(repo, account_manager, board)
    await source.start()
    board.column("Foo").fail_add = True

    results = await asyncio.gather(*repo.issues.channel.emit("opened", FakeIssue(6)), return_exceptions=True)

    assert results == [None]
    assert "Handling opened issue 6 failed" in caplog.text


async def _race_opened_against_backfill(repo, account_manager, board) -> list[FakeCard]:
    """Fire a live "opened" for issue 7 while the backfill is between its column checks."""
    repo.issues.issues = {7: FakeIssue(7)}
    source = make_source(repo, account_manager, board)

    start = asyncio.ensure_future(source.start())
    await asyncio.sleep(0)
    live = repo.issues.channel.emit("opened", FakeIssue(7))
    assert len(live) == 1
    await asyncio.gather(start, *live)
    await _settle()

    return [c for col in board.columns.values() for c in col.cards.values() if c.issue.number == 7]


@pytest.mark.asyncio
async def test_live_opened_racing_backfill_reaches_add_card_twice(repo, account_manager) -> None:
    """
    Neither path sees the other's card before adding, and add_issue takes no lock, so
    a board that does not key cards per column ends up with a duplicate.
    """
    board = FakeBoard({"Foo": "1", "Bar": "2", "Done": "3"}, dedupe=False)

    cards = await _race_opened_against_backfill(repo, account_manager, board)

    assert len(board.add_calls) == 2
    assert len(cards) == 2
    assert all(c.id in board.column("Foo").cards for c in cards)


@pytest.mark.asyncio
async def test_live_opened_racing_backfill_relies_on_board_dedupe(repo, account_manager, board) -> None:
    cards = await _race_opened_against_backfill(repo, account_manager, board)

    assert [issue.number for issue, _ in board.add_calls] == [7, 7]
    assert len(board.created) == 1
    assert len(cards) == 1
