"""Structured reply shapes requested from the completion service, one per stage."""

from typing import Literal, Optional

from pydantic import BaseModel, Field


class ResearchReply(BaseModel):
    findings: list[str] = Field(description="Key findings about the purchase item")
    price_analysis: str = Field(description="Analysis of the price point")
    alternatives_found: list[str] = Field(description="Alternative products or options")
    market_context: str = Field(description="Current market conditions relevant to the purchase")


class ReasoningReply(BaseModel):
    initial_opinion: Literal["approve", "reject"] = Field(description="Initial vote decision")
    arguments: list[str] = Field(description="Arguments supporting the opinion")
    concerns: list[str] = Field(description="Concerns or reservations")
    personal_bias: str = Field(description="How persona traits influence this opinion")


class CritiqueReply(BaseModel):
    challenged_points: list[str] = Field(description="Points from the reasoning that were challenged")
    counter_arguments: list[str] = Field(description="Counter-arguments considered")
    revised_opinion: Optional[Literal["approve", "reject"]] = Field(
        default=None,
        description="Changed opinion, only if the self-critique changed your mind",
    )
    final_confidence: int = Field(ge=0, le=100, description="Confidence in the final decision, 0-100")
    final_reasoning: str = Field(
        description=(
            "A clear 2-3 sentence justification explaining WHY you are voting this way, "
            "based on your persona values and the financial analysis. "
            "Be specific about the key factor driving your decision."
        ),
    )


class PingReply(BaseModel):
    reply: str
