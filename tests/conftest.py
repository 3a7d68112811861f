"""Shared pytest fixtures."""

import asyncio
from collections.abc import Callable
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

import pytest
from pydantic import BaseModel

from config.config_loader import AppConfig, DefaultsConfig, InboxConfig, ModelConfig
from finboard.models import Completion, Persona, PersonaTraits, PurchaseRequest, Vote
from finboard.providers.base import LLMProvider
from finboard.schemas import CritiqueReply, PingReply, ReasoningReply, ResearchReply

Reply = BaseModel | Exception | Callable[[str, str], BaseModel]


def make_persona(persona_id: str = "frugal-frank", name: str = "Frugal Frank", **trait_overrides) -> Persona:
    traits = {
        "risk_tolerance": "conservative",
        "investment_style": "Cash reserves",
        "favorite_metrics": ("cost per use", "savings rate"),
        "pet_peeves": ("impulse buys",),
        "catchphrases": ("Do you NEED it?", "Wait thirty days."),
        "biases": ("assumes every purchase is a want",),
    }
    traits.update(trait_overrides)
    return Persona(
        id=persona_id,
        name=name,
        title="Chief Penny Pincher",
        archetype="The Tightwad",
        backstory="Paid off his mortgage at 34.",
        traits=PersonaTraits(**traits),
        voice_description="Blunt and folksy.",
        decision_framework="Reject unless it pays for itself within a year.",
    )


def make_vote(name: str, decision: str, confidence: int, reasoning: str = "Good value overall") -> Vote:
    return Vote(
        member_id=name.lower().replace(" ", "_"),
        member_name=name,
        decision=decision,
        confidence=confidence,
        reasoning=reasoning,
    )


def default_replies(
    opinion: str = "approve",
    revised: str | None = None,
    confidence: int = 75,
    final_reasoning: str = "Solid value for the money given the budget",
) -> dict[type[BaseModel], Reply]:
    return {
        ResearchReply: ResearchReply(
            findings=["Price is in line with the market"],
            price_analysis="Fair price",
            alternatives_found=["Refurbished model"],
            market_context="Prices are stable",
        ),
        ReasoningReply: ReasoningReply(
            initial_opinion=opinion,
            arguments=["Replaces a broken device"],
            concerns=["Could wait for a sale"],
            personal_bias="I like durable goods",
        ),
        CritiqueReply: CritiqueReply(
            challenged_points=["Is it really broken?"],
            counter_arguments=["A repair might be cheaper"],
            revised_opinion=revised,
            final_confidence=confidence,
            final_reasoning=final_reasoning,
        ),
        PingReply: PingReply(reply="OK"),
    }


class ScriptedProvider(LLMProvider):
    """Test double LLMProvider returning a scripted reply per schema.

    A reply may be a pydantic instance, an exception to raise, or a callable
    taking (system_prompt, user_prompt). Every call is recorded.
    """

    def __init__(
        self,
        provider_name: str = "mock",
        replies: dict[type[BaseModel], Reply] | None = None,
        delay: float = 0.0,
    ) -> None:
        self._name = provider_name
        self.replies = default_replies()
        self.replies.update(replies or {})
        self.delay = delay
        self.calls: list[dict] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def name(self) -> str:
        return self._name

    def model_string(self) -> str:
        return "mock-model"

    async def complete(self, system_prompt, user_prompt, temperature, max_tokens, schema) -> Completion:
        self.calls.append(
            {
                "system_prompt": system_prompt,
                "user_prompt": user_prompt,
                "temperature": temperature,
                "max_tokens": max_tokens,
                "schema": schema,
            }
        )
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            reply = self.replies[schema]
            if isinstance(reply, Exception):
                raise reply
            if callable(reply) and not isinstance(reply, BaseModel):
                reply = reply(system_prompt, user_prompt)
        finally:
            self.in_flight -= 1
        return Completion(
            provider=self._name,
            model="mock-model",
            content=reply,
            latency_sec=0.01,
            token_count=10,
        )


@pytest.fixture
def sample_persona() -> Persona:
    return make_persona()


@pytest.fixture
def sample_purchase() -> PurchaseRequest:
    return PurchaseRequest(
        id="purchase-1",
        item="Laptop",
        price=Decimal("1200"),
        currency="$",
        category="tech",
        urgency="medium",
        created_at=datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc),
        description="14 inch ultrabook",
        url="https://example.com/laptop",
        context="My old laptop died last week",
    )


@pytest.fixture
def scripted_provider() -> ScriptedProvider:
    return ScriptedProvider()


@pytest.fixture
def sample_model_config() -> ModelConfig:
    return ModelConfig(
        name="test_model",
        sdk="openai",
        model="test-model-1",
        api_key_env="TEST_API_KEY",
        timeout_sec=30,
        max_tokens=1024,
        base_url=None,
    )


@pytest.fixture
def sample_app_config(tmp_path: Path) -> AppConfig:
    model_cfg = ModelConfig(
        name="together",
        sdk="openai",
        model="meta-llama/Meta-Llama-3.1-70B-Instruct-Turbo",
        api_key_env="TOGETHER_API_KEY",
        timeout_sec=60,
        max_tokens=2048,
        base_url="https://api.together.xyz/v1",
    )
    return AppConfig(
        defaults=DefaultsConfig(
            provider="together",
            data_dir=tmp_path / "data",
            output_dir=tmp_path / "output",
        ),
        models={"together": model_cfg},
        inbox=InboxConfig(dir=tmp_path / "inbox", archive_dir=tmp_path / "inbox" / "archive"),
        available_providers={"together"},
    )
