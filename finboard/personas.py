"""Persona registry: built-in YAML catalog plus user-defined personas."""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from finboard.member import ConfigurationError
from finboard.models import Persona, PersonaTraits

logger = logging.getLogger(__name__)

_PERSONA_SUFFIXES = {".yaml", ".yml", ".json"}


@dataclass
class PersonaRegistry:
    built_in: list[Persona] = field(default_factory=list)
    custom: list[Persona] = field(default_factory=list)
    active: list[str] = field(default_factory=list)


def _string_list(traits_raw: dict, key: str) -> tuple[str, ...]:
    value = traits_raw.get(key)
    if value is None:
        return ()
    if not isinstance(value, list):
        raise ConfigurationError(f"Persona trait '{key}' must be a list, got {type(value).__name__}")
    return tuple(str(item) for item in value)


def persona_from_dict(data: dict, is_built_in: bool = True) -> Persona:
    """Build a Persona from a parsed YAML/JSON mapping.

    Raises:
        ConfigurationError: If a required field is missing or a trait list is
            given as a scalar.
    """
    try:
        traits_raw = data["traits"]
        traits = PersonaTraits(
            risk_tolerance=traits_raw["risk_tolerance"],
            investment_style=str(traits_raw["investment_style"]),
            favorite_metrics=_string_list(traits_raw, "favorite_metrics"),
            pet_peeves=_string_list(traits_raw, "pet_peeves"),
            catchphrases=_string_list(traits_raw, "catchphrases"),
            biases=_string_list(traits_raw, "biases"),
        )
        return Persona(
            id=str(data["id"]),
            name=str(data["name"]),
            title=str(data["title"]),
            archetype=str(data["archetype"]),
            backstory=str(data["backstory"]).strip(),
            traits=traits,
            voice_description=str(data["voice_description"]).strip(),
            decision_framework=str(data["decision_framework"]).strip(),
            is_built_in=is_built_in,
        )
    except (AttributeError, KeyError, TypeError) as exc:
        raise ConfigurationError(f"Invalid persona definition: missing or malformed {exc}") from exc


def load_persona_file(path: Path, is_built_in: bool = True) -> Persona:
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f) if path.suffix == ".json" else yaml.safe_load(f)
    if not isinstance(data, dict):
        raise ConfigurationError(f"Persona file {path.name} does not contain a mapping")
    return persona_from_dict(data, is_built_in=is_built_in)


def _load_dir(directory: Path, is_built_in: bool) -> list[Persona]:
    if not directory.exists():
        return []
    personas: list[Persona] = []
    for path in sorted(directory.iterdir()):
        if path.suffix not in _PERSONA_SUFFIXES:
            continue
        try:
            personas.append(load_persona_file(path, is_built_in=is_built_in))
        except (OSError, ValueError, yaml.YAMLError) as exc:
            logger.error("Failed to load persona from %s: %s", path.name, exc)
    return personas


def load_builtin_personas(personas_dir: Path) -> list[Persona]:
    return _load_dir(personas_dir, is_built_in=True)


def load_custom_personas(data_dir: Path) -> list[Persona]:
    """Load user personas from <data_dir>/custom-personas; always marked non-built-in."""
    return _load_dir(data_dir / "custom-personas", is_built_in=False)


def create_registry(
    personas_dir: Path,
    data_dir: Path,
    active_ids: list[str] | None = None,
) -> PersonaRegistry:
    """Build the registry. With no active ids, every built-in persona is active."""
    built_in = load_builtin_personas(personas_dir)
    custom = load_custom_personas(data_dir)
    active = list(active_ids) if active_ids else [p.id for p in built_in]
    return PersonaRegistry(built_in=built_in, custom=custom, active=active)


def all_personas(registry: PersonaRegistry) -> list[Persona]:
    return [*registry.built_in, *registry.custom]


def get_persona(registry: PersonaRegistry, persona_id: str) -> Persona | None:
    return next((p for p in all_personas(registry) if p.id == persona_id), None)


def active_personas(registry: PersonaRegistry) -> list[Persona]:
    """Resolve active ids in order, skipping ids that match no persona."""
    resolved: list[Persona] = []
    for persona_id in registry.active:
        persona = get_persona(registry, persona_id)
        if persona is None:
            logger.warning("Active persona '%s' not found in registry, skipping", persona_id)
            continue
        resolved.append(persona)
    return resolved
