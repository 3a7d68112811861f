"""Vote derivation and tallying. Pure functions, no I/O."""

import random

from finboard.models import CritiqueOutput, Decision, Persona, ReasoningOutput, Vote, VotingResult

_HIGHLIGHT_CHARS = 100


def generate_vote(
    persona: Persona,
    reasoning: ReasoningOutput,
    critique: CritiqueOutput,
    rng: random.Random | None = None,
) -> Vote:
    """Derive a member's final vote from its reasoning and critique.

    A revised opinion from the critique overrides the initial opinion.
    The catchphrase is a random pick; pass a seeded rng to fix it.
    """
    decision: Decision = critique.revised_opinion or reasoning.initial_opinion
    catchphrases = persona.traits.catchphrases
    catchphrase = (rng or random).choice(catchphrases) if catchphrases else None

    return Vote(
        member_id=persona.id,
        member_name=persona.name,
        decision=decision,
        confidence=critique.final_confidence,
        reasoning=critique.final_reasoning,
        catchphrase=catchphrase,
    )


def _summarize(votes: list[Vote], decision: Decision, unanimous: bool) -> str:
    """The quoted highlight always ends in "...", even when the reasoning is under 100 chars."""
    approvers = [v for v in votes if v.decision == "approve"]
    rejecters = [v for v in votes if v.decision == "reject"]

    verdict = "APPROVED" if decision == "approve" else "REJECTED"
    summary = f"The board has {verdict} this purchase"
    if unanimous:
        summary += " unanimously."
    else:
        summary += f" ({len(approvers)}-{len(rejecters)})."

    winners = approvers if decision == "approve" else rejecters
    if winners:
        # max() keeps the earliest vote on equal confidence
        top = max(winners, key=lambda v: v.confidence)
        stance = "most confident" if decision == "approve" else "most opposed"
        summary += f' {top.member_name} was {stance}: "{top.reasoning[:_HIGHLIGHT_CHARS]}..."'

    return summary


def tally_votes(purchase_id: str, votes: list[Vote]) -> VotingResult:
    """Aggregate completed members' votes into a verdict.

    Strict majority: approve only when approvals outnumber rejections, so a
    tie rejects. With no votes at all the result is a degenerate
    "unanimous reject"; check VotingResult.has_votes before presenting it.
    """
    approve_count = sum(1 for v in votes if v.decision == "approve")
    reject_count = sum(1 for v in votes if v.decision == "reject")

    final_decision: Decision = "approve" if approve_count > reject_count else "reject"
    unanimous = approve_count == 0 or reject_count == 0

    return VotingResult(
        purchase_id=purchase_id,
        votes=list(votes),
        final_decision=final_decision,
        approve_count=approve_count,
        reject_count=reject_count,
        unanimous=unanimous,
        summary=_summarize(votes, final_decision, unanimous),
    )
