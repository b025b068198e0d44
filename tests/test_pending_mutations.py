"""Tests for optimistic mutation pre-images and the per-item mutation ledger."""
from __future__ import annotations

import asyncio
from uuid import uuid4

import pytest

from conftest import NOW, make_comment, make_item
from status_viewer.schemas import ReactionEmoji, StatusComment, StatusCounts
from status_viewer.services.pending_mutations import (
    CommentMutation,
    MutationKind,
    MutationLedger,
    ReactionMutation,
    ViewMutation,
    apply_mutation,
    confirm_comment,
    reconcile_counts,
    revert_mutation,
)


def test_reaction_toggle_covers_add_replace_and_remove() -> None:
    item = make_item(reactions=4)

    added = ReactionMutation.toggle(item, ReactionEmoji.LIKE)
    assert (added.next_reaction, added.next_count) == (ReactionEmoji.LIKE, 5)

    item.user_reaction = ReactionEmoji.LIKE
    replaced = ReactionMutation.toggle(item, ReactionEmoji.SUPPORT)
    assert (replaced.next_reaction, replaced.next_count) == (ReactionEmoji.SUPPORT, 4)

    removed = ReactionMutation.toggle(item, ReactionEmoji.LIKE)
    assert removed.removes
    assert removed.next_count == 3


def test_removing_reaction_never_goes_negative() -> None:
    item = make_item(reactions=0, reaction=ReactionEmoji.LIKE)

    mutation = ReactionMutation.toggle(item, ReactionEmoji.LIKE)

    assert mutation.next_count == 0


def test_apply_then_revert_restores_reaction_pre_image() -> None:
    item = make_item(reactions=2, reaction=ReactionEmoji.APPRECIATE)
    mutation = ReactionMutation.toggle(item, ReactionEmoji.INSIGHTFUL)

    apply_mutation(item, mutation)
    assert item.user_reaction is ReactionEmoji.INSIGHTFUL
    assert item.reactions_count == 2

    revert_mutation(item, mutation)
    assert item.user_reaction is ReactionEmoji.APPRECIATE
    assert item.reactions_count == 2


def test_comment_mutation_prepends_and_reverts_by_identity() -> None:
    item = make_item(comments=1)
    existing = make_comment(item.id)
    comments = [existing]
    optimistic = StatusComment(id=uuid4(), status_id=item.id, content="mine", created_at=NOW, pending=True)
    mutation = CommentMutation(item_id=item.id, comment=optimistic, previous_count=item.comments_count)

    apply_mutation(item, mutation, comments)
    assert comments == [optimistic, existing]
    assert item.comments_count == 2

    revert_mutation(item, mutation, comments)
    assert comments == [existing]
    assert item.comments_count == 1


def test_view_mutation_round_trip() -> None:
    item = make_item(views=7)
    mutation = ViewMutation(item_id=item.id, previous_viewed=False, previous_count=7)

    apply_mutation(item, mutation)
    assert item.is_viewed
    assert item.views_count == 8

    revert_mutation(item, mutation)
    assert not item.is_viewed
    assert item.views_count == 7


def test_confirm_comment_keeps_position() -> None:
    item = make_item()
    older = make_comment(item.id, "older")
    optimistic = StatusComment(id=uuid4(), status_id=item.id, content="mine", created_at=NOW, pending=True)
    confirmed = StatusComment(id=uuid4(), status_id=item.id, content="mine", created_at=NOW)
    comments = [optimistic, older]

    confirm_comment(comments, optimistic, confirmed)

    assert comments == [confirmed, older]


def test_confirm_comment_does_not_duplicate_after_reload() -> None:
    item = make_item()
    confirmed = make_comment(item.id, "mine")
    stale_optimistic = StatusComment(id=uuid4(), status_id=item.id, content="mine", created_at=NOW, pending=True)
    comments = [confirmed]

    confirm_comment(comments, stale_optimistic, confirmed)

    assert comments == [confirmed]


def test_reconcile_counts_overwrites_estimates() -> None:
    item = make_item(views=1, reactions=1, comments=1)

    reconcile_counts(item, StatusCounts(views_count=10, reactions_count=0, comments_count=3))

    assert (item.views_count, item.reactions_count, item.comments_count) == (10, 0, 3)


def test_reconcile_counts_keeps_counters_with_changes_in_flight() -> None:
    item = make_item(views=1, reactions=1, comments=1)
    pending = CommentMutation(item_id=item.id, comment=make_comment(item.id), previous_count=item.comments_count)
    apply_mutation(item, pending, [])

    reconcile_counts(
        item,
        StatusCounts(views_count=5, reactions_count=2, comments_count=1),
        keep={MutationKind.COMMENT},
    )

    assert (item.views_count, item.reactions_count, item.comments_count) == (5, 2, 2)


@pytest.mark.asyncio
async def test_ledger_runs_first_mutation_immediately_and_queues_same_key() -> None:
    ledger = MutationLedger()
    item_id = uuid4()
    order: list[str] = []
    release = asyncio.Event()

    async def _slow() -> None:
        await release.wait()
        order.append("first done")

    def _first():
        order.append("first begin")
        return _slow()

    def _second():
        order.append("second begin")
        return None

    ledger.submit(item_id, MutationKind.REACTION, _first)
    ledger.submit(item_id, MutationKind.REACTION, _second)

    assert order == ["first begin"]
    assert ledger.is_busy(item_id, MutationKind.REACTION)

    release.set()
    await ledger.wait_idle()

    assert order == ["first begin", "first done", "second begin"]
    assert not ledger.is_busy(item_id, MutationKind.REACTION)


@pytest.mark.asyncio
async def test_ledger_keys_are_independent() -> None:
    ledger = MutationLedger()
    item_id = uuid4()
    started: list[MutationKind] = []
    release = asyncio.Event()

    def _begin(kind: MutationKind):
        def _start():
            started.append(kind)
            return release.wait()

        return _start

    ledger.submit(item_id, MutationKind.REACTION, _begin(MutationKind.REACTION))
    ledger.submit(item_id, MutationKind.COMMENT, _begin(MutationKind.COMMENT))
    ledger.submit(uuid4(), MutationKind.REACTION, _begin(MutationKind.VIEW))

    assert started == [MutationKind.REACTION, MutationKind.COMMENT, MutationKind.VIEW]

    release.set()
    await ledger.wait_idle()


@pytest.mark.asyncio
async def test_abandoned_ledger_skips_queued_work() -> None:
    ledger = MutationLedger()
    item_id = uuid4()
    release = asyncio.Event()
    queued: list[str] = []

    ledger.submit(item_id, MutationKind.COMMENT, lambda: release.wait())
    follow_up = ledger.submit(item_id, MutationKind.COMMENT, lambda: queued.append("ran"))

    ledger.abandon()
    release.set()
    await follow_up

    assert queued == []
    assert ledger.abandoned
    with pytest.raises(RuntimeError):
        ledger.submit(item_id, MutationKind.COMMENT, lambda: None)
