"""Tests for finboard/session_store.py."""

import json
import logging
from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from finboard.board import BoardMeeting
from finboard.member import BoardMember
from finboard.session_store import SessionStore, split_by_verdict, summarize_session
from tests.conftest import ScriptedProvider, default_replies, make_persona


@pytest.fixture
def store(tmp_path) -> SessionStore:
    return SessionStore(tmp_path / "data")


async def _deliberate(purchase, opinion: str = "approve"):
    provider = ScriptedProvider(replies=default_replies(opinion=opinion))
    members = [
        BoardMember(make_persona("frugal-frank", "Frugal Frank"), provider),
        BoardMember(make_persona("chad-alpha", "Chad Alpha"), provider),
    ]
    return await BoardMeeting(members).deliberate(purchase)


def test_create_session_writes_file(store):
    session = store.create_session(name="March", active_personas=["frugal-frank"])
    path = store.sessions_dir / f"{session.id}.json"
    assert path.exists()
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["name"] == "March"
    assert data["active_personas"] == ["frugal-frank"]
    assert store.current is session


async def test_deliberation_survives_reload(store, sample_purchase):
    deliberation = await _deliberate(sample_purchase)
    session = store.add_deliberation(deliberation)

    reloaded = SessionStore(store.data_dir).load_session(session.id)

    assert reloaded is not None
    assert len(reloaded.deliberations) == 1
    restored = reloaded.deliberations[0]
    assert restored.id == deliberation.id
    assert restored.purchase == sample_purchase
    assert restored.purchase.price == Decimal("1200")
    assert restored.voting_result.summary == deliberation.voting_result.summary
    assert restored.voting_result.votes == deliberation.voting_result.votes
    assert restored.member_results[0].critique == deliberation.member_results[0].critique
    assert restored.started_at == deliberation.started_at


def test_load_missing_session_returns_none(store):
    assert store.load_session("does-not-exist") is None


async def test_summaries_count_approvals_and_spend(store, sample_purchase):
    store.add_deliberation(await _deliberate(sample_purchase, "approve"))
    cheaper = replace(sample_purchase, id="purchase-2", price=Decimal("300"))
    store.add_deliberation(await _deliberate(cheaper, "approve"))
    store.add_deliberation(await _deliberate(replace(sample_purchase, id="purchase-3"), "reject"))

    summary = summarize_session(store.current)
    assert summary.deliberation_count == 3
    assert summary.total_approved == 2
    assert summary.total_rejected == 1
    assert summary.total_spent_approved == Decimal("1500")


def test_list_sessions_newest_first(store):
    older = store.create_session(name="old")
    older.created_at = datetime(2025, 1, 1, tzinfo=timezone.utc)
    store.save_session(older)
    newer = store.create_session(name="new")

    assert [s.id for s in store.list_sessions()] == [newer.id, older.id]


def test_list_sessions_skips_corrupt_file(store, caplog):
    good = store.create_session()
    (store.sessions_dir / "junk.json").write_text("{not json", encoding="utf-8")

    with caplog.at_level(logging.WARNING):
        summaries = store.list_sessions()

    assert [s.id for s in summaries] == [good.id]
    assert any("junk.json" in msg for msg in caplog.messages)


def test_get_or_create_reuses_latest(store):
    first = store.create_session()
    fresh = SessionStore(store.data_dir)
    assert fresh.get_or_create_session(["frugal-frank"]).id == first.id


def test_get_or_create_starts_new_when_empty(store):
    session = store.get_or_create_session(["frugal-frank"])
    assert session.active_personas == ["frugal-frank"]
    assert len(store.list_sessions()) == 1


async def test_history_by_id_and_current(store, sample_purchase):
    session = store.add_deliberation(await _deliberate(sample_purchase))
    assert len(store.history()) == 1
    assert len(SessionStore(store.data_dir).history(session.id)) == 1
    assert SessionStore(store.data_dir).history() == []


async def test_zero_vote_run_is_not_counted_as_rejection(store, sample_purchase):
    store.add_deliberation(await _deliberate(sample_purchase, "approve"))
    store.add_deliberation(await BoardMeeting([]).deliberate(replace(sample_purchase, id="purchase-2")))

    summary = summarize_session(store.current)
    assert summary.deliberation_count == 2
    assert summary.total_approved == 1
    assert summary.total_rejected == 0
    assert summary.total_no_verdict == 1
    assert summary.total_spent_approved == Decimal("1200")


async def test_split_by_verdict_partitions(sample_purchase):
    approved = await _deliberate(sample_purchase, "approve")
    rejected = await _deliberate(sample_purchase, "reject")
    undecided = await BoardMeeting([]).deliberate(sample_purchase)

    assert split_by_verdict([undecided, rejected, approved]) == ([approved], [rejected], [undecided])
