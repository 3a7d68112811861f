"""Tests for finboard/output.py."""

from pathlib import Path

import pytest
from rich.console import Console

from finboard.board import BoardEvent, BoardMeeting, EventKind
from finboard.member import BoardMember
from finboard.models import BoardDeliberation
from finboard.output import _slug, print_event, print_history, print_persona, print_verdict, save_to_file
from finboard.providers.base import ProviderError
from finboard.schemas import ResearchReply
from tests.conftest import ScriptedProvider, make_persona, make_vote


def _recorder() -> Console:
    return Console(record=True, width=120, force_terminal=False)


async def _run(purchase, fail_research: bool = False) -> BoardDeliberation:
    replies = {ResearchReply: ProviderError("mock", "down")} if fail_research else None
    provider = ScriptedProvider(replies=replies)
    members = [
        BoardMember(make_persona("frugal-frank", "Frugal Frank"), provider),
        BoardMember(make_persona("chad-alpha", "Chad Alpha"), provider),
    ]
    return await BoardMeeting(members).deliberate(purchase)


@pytest.fixture
async def deliberation(sample_purchase) -> BoardDeliberation:
    return await _run(sample_purchase)


def test_slug_basic():
    assert _slug("Noise-cancelling headphones (2026)") == "noise-cancelling-headphones-2026"


def test_slug_max_len():
    assert len(_slug("a" * 100)) <= 40


def test_slug_special_chars():
    result = _slug("Bike & helmet, v2.0!")
    assert "&" not in result
    assert "." not in result
    assert "," not in result


async def test_save_to_file_creates_output_dir(tmp_path: Path, deliberation):
    output_dir = tmp_path / "nested" / "output"
    saved = save_to_file(deliberation, output_dir)
    assert saved.exists()
    assert saved.suffix == ".md"
    assert saved.parent == output_dir
    assert saved.name.endswith("_laptop.md")


async def test_save_to_file_content(tmp_path: Path, deliberation):
    content = save_to_file(deliberation, tmp_path).read_text(encoding="utf-8")
    assert content.startswith("# Board Deliberation: Laptop")
    assert "**Price:** $1200" in content
    assert "**Verdict:** APPROVE (2-0)" in content
    assert "> My old laptop died last week" in content
    assert "## Frugal Frank" in content
    assert "## Chad Alpha" in content
    assert "### Vote: APPROVE (75%)" in content
    assert "## Summary" in content
    assert deliberation.voting_result.summary in content


async def test_save_to_file_without_votes(tmp_path: Path, sample_purchase):
    empty = await _run(sample_purchase, fail_research=True)
    content = save_to_file(empty, tmp_path).read_text(encoding="utf-8")
    assert "**Verdict:** none (no member completed)" in content
    assert "## Frugal Frank" not in content


async def test_print_verdict_lists_votes_by_confidence(deliberation):
    deliberation.voting_result.votes = [
        make_vote("Low Larry", "approve", 20),
        make_vote("High Hanna", "approve", 95),
    ]
    out = _recorder()
    print_verdict(deliberation, out)
    text = out.export_text()
    assert "APPROVED" in text
    assert "Unanimous" in text
    assert text.index("High Hanna") < text.index("Low Larry")


async def test_print_verdict_warns_without_votes(sample_purchase):
    empty = await _run(sample_purchase, fail_research=True)
    out = _recorder()
    print_verdict(empty, out)
    text = out.export_text()
    assert "No board member completed" in text
    assert "REJECTED" not in text


def test_print_event_vote_line():
    out = _recorder()
    vote = make_vote("Frugal Frank", "reject", 88, "Wait for the sale")
    print_event(BoardEvent(EventKind.VOTE_CAST, "frugal_frank", "Frugal Frank", vote), out)
    text = out.export_text()
    assert "Frugal Frank votes REJECT (88% confident)" in text
    assert "Wait for the sale" in text


def test_print_event_error_line():
    out = _recorder()
    print_event(BoardEvent(EventKind.MEMBER_ERRORED, "x", "Crypto Kyle", ProviderError("mock", "timed out")), out)
    assert "Crypto Kyle dropped out" in out.export_text()


async def test_print_history_totals(deliberation):
    out = _recorder()
    print_history([deliberation, deliberation], out)
    text = out.export_text()
    assert "Total deliberations: 2" in text
    assert "Total approved spending: 2400.00" in text


def test_print_persona_shows_first_catchphrase(sample_persona):
    out = _recorder()
    print_persona(sample_persona, active=True, out=out)
    text = out.export_text()
    assert "Frugal Frank" in text
    assert "Do you NEED it?" in text


async def test_print_history_marks_zero_vote_runs(deliberation, sample_purchase):
    empty = await _run(sample_purchase, fail_research=True)
    out = _recorder()
    print_history([deliberation, empty], out)
    text = out.export_text()
    assert "NO VERDICT (no member completed)" in text
    assert "REJECTED (0-0)" not in text
    assert "Approved: 1 | Rejected: 0 | No verdict: 1" in text
    assert "Total approved spending: 1200.00" in text
