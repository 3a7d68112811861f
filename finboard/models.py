"""Plain dataclasses for the board deliberation pipeline. No I/O."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Literal

Decision = Literal["approve", "reject"]
Urgency = Literal["low", "medium", "high"]
RiskTolerance = Literal["conservative", "moderate", "aggressive", "yolo"]

URGENCIES: tuple[str, ...] = ("low", "medium", "high")
RISK_TOLERANCES: tuple[str, ...] = ("conservative", "moderate", "aggressive", "yolo")


@dataclass(frozen=True)
class PurchaseRequest:
    id: str
    item: str
    price: Decimal
    currency: str           # display symbol or ISO code, e.g. "$" or "EUR"
    category: str
    urgency: Urgency
    created_at: datetime
    description: str | None = None
    url: str | None = None
    context: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.price, Decimal):
            object.__setattr__(self, "price", Decimal(str(self.price)))
        if self.price <= 0:
            raise ValueError(f"Purchase price must be positive, got {self.price}")
        if self.urgency not in URGENCIES:
            raise ValueError(f"Unknown urgency: {self.urgency!r}")


@dataclass(frozen=True)
class PersonaTraits:
    risk_tolerance: RiskTolerance
    investment_style: str
    favorite_metrics: tuple[str, ...] = ()
    pet_peeves: tuple[str, ...] = ()
    catchphrases: tuple[str, ...] = ()
    biases: tuple[str, ...] = ()


@dataclass(frozen=True)
class Persona:
    id: str
    name: str
    title: str
    archetype: str
    backstory: str
    traits: PersonaTraits
    voice_description: str
    decision_framework: str
    is_built_in: bool = True


@dataclass
class ResearchOutput:
    member_id: str
    findings: list[str]
    price_analysis: str
    alternatives_found: list[str]
    market_context: str


@dataclass
class ReasoningOutput:
    member_id: str
    initial_opinion: Decision
    arguments: list[str]
    concerns: list[str]
    personal_bias: str


@dataclass
class CritiqueOutput:
    member_id: str
    challenged_points: list[str]
    counter_arguments: list[str]
    final_confidence: int   # 0-100 inclusive
    final_reasoning: str
    revised_opinion: Decision | None = None


@dataclass
class AgentContext:
    """What a stage agent gets to see: the purchase plus earlier stage outputs."""

    purchase: PurchaseRequest
    research: ResearchOutput | None = None
    reasoning: ReasoningOutput | None = None


@dataclass
class Completion:
    provider: str
    model: str
    content: Any            # validated pydantic instance of the requested schema
    latency_sec: float
    token_count: int | None


@dataclass
class Vote:
    member_id: str
    member_name: str
    decision: Decision
    confidence: int
    reasoning: str
    catchphrase: str | None = None


@dataclass
class DeliberationResult:
    member_id: str
    member_name: str
    research: ResearchOutput
    reasoning: ReasoningOutput
    critique: CritiqueOutput
    final_vote: Vote
    processing_time_sec: float


@dataclass
class VotingResult:
    purchase_id: str
    final_decision: Decision
    approve_count: int
    reject_count: int
    unanimous: bool
    summary: str
    votes: list[Vote] = field(default_factory=list)

    @property
    def has_votes(self) -> bool:
        """False for the degenerate zero-vote tally, which is not a real verdict."""
        return bool(self.votes)


@dataclass
class BoardDeliberation:
    id: str
    purchase: PurchaseRequest
    member_results: list[DeliberationResult]
    voting_result: VotingResult
    started_at: datetime
    completed_at: datetime
    total_duration_sec: float
