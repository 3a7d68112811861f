"""Board meeting orchestration: per-member pipelines, fan-out, tally."""

import asyncio
import logging
import random
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from finboard.member import BoardMember, ConfigurationError
from finboard.models import AgentContext, BoardDeliberation, DeliberationResult, PurchaseRequest
from finboard.voting import generate_vote, tally_votes

logger = logging.getLogger(__name__)


class EventKind(str, Enum):
    MEMBER_STARTED = "member:start"
    RESEARCH_COMPLETE = "member:research:complete"
    REASONING_COMPLETE = "member:reasoning:complete"
    CRITIQUE_COMPLETE = "member:critique:complete"
    VOTE_CAST = "member:vote"
    MEMBER_ERRORED = "member:error"
    DELIBERATION_COMPLETE = "deliberation:complete"


@dataclass
class BoardEvent:
    kind: EventKind
    member_id: str | None = None
    member_name: str | None = None
    payload: Any = None     # stage output, Vote, exception or BoardDeliberation


Listener = Callable[[BoardEvent], None]


class BoardMeeting:
    """Runs every member's research → reasoning → critique → vote pipeline.

    Members run concurrently when parallel_execution is set, otherwise one at
    a time in list order. A failing member is dropped from the result and
    never affects its siblings. Listeners only observe; an exception raised
    by a listener is logged and ignored.
    """

    def __init__(
        self,
        members: list[BoardMember],
        parallel_execution: bool = True,
        listeners: list[Listener] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        seen: set[str] = set()
        for member in members:
            if member.id in seen:
                raise ConfigurationError(f"Duplicate board member id: {member.id!r}")
            seen.add(member.id)
        self.members = list(members)
        self.parallel_execution = parallel_execution
        self._listeners: list[Listener] = list(listeners or [])
        self._rng = rng

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def _emit(self, event: BoardEvent) -> None:
        for listener in self._listeners:
            try:
                listener(event)
            except Exception as exc:
                logger.warning("Progress listener failed on %s: %s", event.kind.value, exc)

    async def deliberate(self, purchase: PurchaseRequest) -> BoardDeliberation:
        """Run the whole board against one purchase. Never raises for member failures."""
        started_at = datetime.now(timezone.utc)
        start = time.monotonic()

        logger.info(
            "Deliberating on %r with %d members (%s)",
            purchase.item,
            len(self.members),
            "parallel" if self.parallel_execution else "sequential",
        )

        if self.parallel_execution:
            member_results = await self._execute_parallel(purchase)
        else:
            member_results = await self._execute_sequential(purchase)

        voting_result = tally_votes(purchase.id, [r.final_vote for r in member_results])
        completed_at = datetime.now(timezone.utc)

        deliberation = BoardDeliberation(
            id=str(uuid.uuid4()),
            purchase=purchase,
            member_results=member_results,
            voting_result=voting_result,
            started_at=started_at,
            completed_at=completed_at,
            total_duration_sec=time.monotonic() - start,
        )

        logger.info(
            "Deliberation complete: %d/%d members voted, verdict %s",
            len(member_results),
            len(self.members),
            voting_result.final_decision,
        )
        self._emit(BoardEvent(EventKind.DELIBERATION_COMPLETE, payload=deliberation))
        return deliberation

    async def _execute_parallel(self, purchase: PurchaseRequest) -> list[DeliberationResult]:
        results = await asyncio.gather(*(self._execute_member_safe(m, purchase) for m in self.members))
        return [r for r in results if r is not None]

    async def _execute_sequential(self, purchase: PurchaseRequest) -> list[DeliberationResult]:
        results: list[DeliberationResult] = []
        for member in self.members:
            result = await self._execute_member_safe(member, purchase)
            if result is not None:
                results.append(result)
        return results

    async def _execute_member_safe(
        self,
        member: BoardMember,
        purchase: PurchaseRequest,
    ) -> DeliberationResult | None:
        """Run one member's pipeline. Never raises; returns None on any failure."""
        try:
            return await self._execute_member(member, purchase)
        except Exception as exc:
            logger.warning("Board member %s dropped: %s", member.id, exc)
            self._emit(BoardEvent(EventKind.MEMBER_ERRORED, member.id, member.name, exc))
            return None

    async def _execute_member(self, member: BoardMember, purchase: PurchaseRequest) -> DeliberationResult:
        start = time.monotonic()
        self._emit(BoardEvent(EventKind.MEMBER_STARTED, member.id, member.name))

        research = await member.research_agent.execute(AgentContext(purchase=purchase))
        self._emit(BoardEvent(EventKind.RESEARCH_COMPLETE, member.id, member.name, research))

        reasoning = await member.reasoning_agent.execute(AgentContext(purchase=purchase, research=research))
        self._emit(BoardEvent(EventKind.REASONING_COMPLETE, member.id, member.name, reasoning))

        critique = await member.critique_agent.execute(
            AgentContext(purchase=purchase, research=research, reasoning=reasoning)
        )
        self._emit(BoardEvent(EventKind.CRITIQUE_COMPLETE, member.id, member.name, critique))

        vote = generate_vote(member.persona, reasoning, critique, rng=self._rng)
        self._emit(BoardEvent(EventKind.VOTE_CAST, member.id, member.name, vote))

        return DeliberationResult(
            member_id=member.id,
            member_name=member.name,
            research=research,
            reasoning=reasoning,
            critique=critique,
            final_vote=vote,
            processing_time_sec=time.monotonic() - start,
        )
