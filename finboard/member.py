"""Board member: one persona wired to its three stage agents."""

from finboard.agents import CritiqueAgent, ReasoningAgent, ResearchAgent
from finboard.models import RISK_TOLERANCES, Persona
from finboard.providers.base import LLMProvider

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 1024


class ConfigurationError(ValueError):
    """Raised when a persona or board configuration cannot be used."""


def validate_persona(persona: Persona) -> None:
    """Reject personas that would break the pipeline mid-deliberation.

    Raises:
        ConfigurationError: On a blank id or name, an unknown risk tolerance,
            or an empty catchphrase list (vote derivation picks one).
    """
    if not persona.id.strip():
        raise ConfigurationError("Persona id must not be empty")
    if not persona.name.strip():
        raise ConfigurationError(f"Persona {persona.id!r} has no name")
    if persona.traits.risk_tolerance not in RISK_TOLERANCES:
        raise ConfigurationError(
            f"Persona {persona.id!r} has unknown risk tolerance {persona.traits.risk_tolerance!r}"
        )
    if not persona.traits.catchphrases:
        raise ConfigurationError(f"Persona {persona.id!r} needs at least one catchphrase")


class BoardMember:
    """Composition unit scheduled by the board meeting. Holds no pipeline logic."""

    def __init__(
        self,
        persona: Persona,
        provider: LLMProvider,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> None:
        validate_persona(persona)
        self.id = persona.id
        self.persona = persona
        self.research_agent = ResearchAgent(persona, provider, temperature, max_tokens)
        self.reasoning_agent = ReasoningAgent(persona, provider, temperature, max_tokens)
        self.critique_agent = CritiqueAgent(persona, provider, temperature, max_tokens)

    @property
    def name(self) -> str:
        return self.persona.name

    def __repr__(self) -> str:
        return f"BoardMember(id={self.id!r}, name={self.persona.name!r})"
