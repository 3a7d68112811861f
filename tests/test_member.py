"""Tests for finboard/member.py."""

import pytest

from finboard.agents import CritiqueAgent, ReasoningAgent, ResearchAgent
from finboard.member import BoardMember, ConfigurationError, validate_persona
from tests.conftest import make_persona


def test_member_wires_three_agents(sample_persona, scripted_provider):
    member = BoardMember(sample_persona, scripted_provider, temperature=0.3, max_tokens=300)

    assert member.id == "frugal-frank"
    assert member.name == "Frugal Frank"
    assert isinstance(member.research_agent, ResearchAgent)
    assert isinstance(member.reasoning_agent, ReasoningAgent)
    assert isinstance(member.critique_agent, CritiqueAgent)
    for agent in (member.research_agent, member.reasoning_agent, member.critique_agent):
        assert agent.persona is sample_persona
        assert agent.provider is scripted_provider
        assert agent.temperature == 0.3
        assert agent.max_tokens == 300


def test_member_defaults(sample_persona, scripted_provider):
    member = BoardMember(sample_persona, scripted_provider)
    assert member.research_agent.temperature == 0.7
    assert member.research_agent.max_tokens == 1024


def test_empty_catchphrases_rejected_at_construction(scripted_provider):
    persona = make_persona(catchphrases=())
    with pytest.raises(ConfigurationError, match="catchphrase"):
        BoardMember(persona, scripted_provider)


def test_unknown_risk_tolerance_rejected():
    with pytest.raises(ConfigurationError, match="risk tolerance"):
        validate_persona(make_persona(risk_tolerance="reckless"))


def test_blank_id_rejected():
    with pytest.raises(ConfigurationError):
        validate_persona(make_persona(persona_id="  "))


def test_blank_name_rejected():
    with pytest.raises(ConfigurationError, match="no name"):
        validate_persona(make_persona(name=""))


def test_configuration_error_is_value_error():
    assert issubclass(ConfigurationError, ValueError)
