"""Stage agents: research, reasoning and self-critique.

Each agent pairs a persona-driven system prompt with a stage-specific task
prompt and asks the completion provider for that stage's reply schema.
Agents keep no state between calls and never retry.
"""

import logging
from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from pydantic import BaseModel

from finboard.models import AgentContext, CritiqueOutput, Persona, PurchaseRequest, ReasoningOutput, ResearchOutput
from finboard.providers.base import LLMProvider
from finboard.schemas import CritiqueReply, ReasoningReply, ResearchReply

logger = logging.getLogger(__name__)

_NO_RESEARCH = "No research available."
_NO_REASONING = "No reasoning available."

OutputT = TypeVar("OutputT", ResearchOutput, ReasoningOutput, CritiqueOutput)


def build_system_prompt(persona: Persona) -> str:
    traits = persona.traits
    return f"""You are {persona.name}, {persona.title}.

ARCHETYPE: {persona.archetype}

BACKSTORY: {persona.backstory}

YOUR TRAITS:
- Risk Tolerance: {traits.risk_tolerance}
- Investment Style: {traits.investment_style}
- Favorite Metrics: {', '.join(traits.favorite_metrics)}
- Pet Peeves: {', '.join(traits.pet_peeves)}
- Biases: {', '.join(traits.biases)}

YOUR VOICE: {persona.voice_description}

YOUR DECISION FRAMEWORK: {persona.decision_framework}

CATCHPHRASES YOU USE: {' | '.join(traits.catchphrases)}

Stay in character at all times. Your responses should reflect your unique perspective and biases."""


def describe_purchase(purchase: PurchaseRequest, include_url: bool = False) -> str:
    lines = [
        "PURCHASE DETAILS:",
        f"- Item: {purchase.item}",
        f"- Price: {purchase.currency}{purchase.price}",
        f"- Category: {purchase.category}",
        f"- Urgency: {purchase.urgency}",
    ]
    if purchase.description:
        lines.append(f"- Description: {purchase.description}")
    if include_url and purchase.url:
        lines.append(f"- URL: {purchase.url}")
    if purchase.context:
        lines.append(f"- User Context: {purchase.context}")
    return "\n".join(lines)


def _research_block(research: ResearchOutput | None, with_market: bool) -> str:
    if research is None:
        return _NO_RESEARCH
    lines = [
        f"- Key Findings: {'; '.join(research.findings)}",
        f"- Price Analysis: {research.price_analysis}",
        f"- Alternatives Found: {'; '.join(research.alternatives_found)}",
    ]
    if with_market:
        lines.append(f"- Market Context: {research.market_context}")
    return "\n".join(lines)


def _reasoning_block(reasoning: ReasoningOutput | None) -> str:
    if reasoning is None:
        return _NO_REASONING
    return "\n".join([
        f"- Initial Opinion: {reasoning.initial_opinion}",
        f"- Arguments: {'; '.join(reasoning.arguments)}",
        f"- Concerns: {'; '.join(reasoning.concerns)}",
        f"- Personal Bias: {reasoning.personal_bias}",
    ])


class StageAgent(ABC, Generic[OutputT]):
    """One pipeline stage bound to one persona."""

    stage: str = ""
    schema: type[BaseModel]

    def __init__(
        self,
        persona: Persona,
        provider: LLMProvider,
        temperature: float = 0.7,
        max_tokens: int = 1024,
    ) -> None:
        self.persona = persona
        self.provider = provider
        self.temperature = temperature
        self.max_tokens = max_tokens

    @abstractmethod
    def build_prompt(self, context: AgentContext) -> str:
        """Return the stage-specific task prompt."""
        ...

    @abstractmethod
    def _to_output(self, reply: BaseModel) -> OutputT:
        """Stamp a validated reply with the member id."""
        ...

    async def _call(self, context: AgentContext) -> BaseModel:
        completion = await self.provider.complete(
            build_system_prompt(self.persona),
            self.build_prompt(context),
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            schema=self.schema,
        )
        logger.debug("%s finished %s stage via %s", self.persona.id, self.stage, completion.provider)
        return completion.content

    async def execute(self, context: AgentContext) -> OutputT:
        """Run the stage once. Provider errors propagate to the caller."""
        reply = await self._call(context)
        return self._to_output(reply)


class ResearchAgent(StageAgent[ResearchOutput]):
    stage = "research"
    schema = ResearchReply

    def build_prompt(self, context: AgentContext) -> str:
        return f"""RESEARCH TASK: Analyze this potential purchase from your unique perspective.

{describe_purchase(context.purchase, include_url=True)}

Based on your persona and expertise, research and analyze this purchase. Consider:
1. What are the key findings about this item/price point?
2. How does the price compare to alternatives?
3. What alternatives exist?
4. What's the current market context?

Apply your unique perspective and biases to this analysis."""

    def _to_output(self, reply: ResearchReply) -> ResearchOutput:
        return ResearchOutput(
            member_id=self.persona.id,
            findings=list(reply.findings),
            price_analysis=reply.price_analysis,
            alternatives_found=list(reply.alternatives_found),
            market_context=reply.market_context,
        )


class ReasoningAgent(StageAgent[ReasoningOutput]):
    stage = "reasoning"
    schema = ReasoningReply

    def build_prompt(self, context: AgentContext) -> str:
        return f"""REASONING TASK: Form your opinion on this purchase based on your research.

{describe_purchase(context.purchase)}

YOUR RESEARCH FINDINGS:
{_research_block(context.research, with_market=True)}

Based on your persona, decision framework, and the research above:
1. What is your initial opinion? (approve or reject)
2. What are your arguments supporting this opinion?
3. What concerns do you have?
4. How do your personal biases influence this opinion?

Be authentic to your character. Your opinion should clearly reflect your unique perspective."""

    def _to_output(self, reply: ReasoningReply) -> ReasoningOutput:
        return ReasoningOutput(
            member_id=self.persona.id,
            initial_opinion=reply.initial_opinion,
            arguments=list(reply.arguments),
            concerns=list(reply.concerns),
            personal_bias=reply.personal_bias,
        )


class CritiqueAgent(StageAgent[CritiqueOutput]):
    stage = "critique"
    schema = CritiqueReply

    def build_prompt(self, context: AgentContext) -> str:
        return f"""SELF-CRITIQUE TASK: Challenge your own reasoning and finalize your opinion.

{describe_purchase(context.purchase)}

YOUR RESEARCH:
{_research_block(context.research, with_market=False)}

YOUR INITIAL REASONING:
{_reasoning_block(context.reasoning)}

Now, play devil's advocate against yourself:
1. What points in your reasoning can be challenged?
2. What counter-arguments exist?
3. After this self-critique, do you want to revise your opinion?
4. What is your final confidence level (0-100)?
5. What is your final reasoning? Write a clear 2-3 sentence justification that:
   - Explains the PRIMARY reason for your vote (not just "good value", be specific)
   - References specific numbers or facts from the purchase/research
   - Reflects your unique persona perspective

Be honest in your self-critique. It's okay to change your mind or lower your confidence if the counter-arguments are compelling."""

    def _to_output(self, reply: CritiqueReply) -> CritiqueOutput:
        return CritiqueOutput(
            member_id=self.persona.id,
            challenged_points=list(reply.challenged_points),
            counter_arguments=list(reply.counter_arguments),
            revised_opinion=reply.revised_opinion,
            final_confidence=reply.final_confidence,
            final_reasoning=reply.final_reasoning,
        )
