"""Abstract base for completion providers plus structured-reply helpers."""

import json
from abc import ABC, abstractmethod
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from finboard.models import Completion

T = TypeVar("T", bound=BaseModel)


class ProviderError(Exception):
    """Raised when a provider call fails."""

    def __init__(self, provider_name: str, message: str) -> None:
        self.provider_name = provider_name
        super().__init__(f"[{provider_name}] {message}")


class ShapeMismatchError(ProviderError):
    """Raised when a reply cannot be read as the requested schema."""

    def __init__(self, provider_name: str, message: str, raw: str = "") -> None:
        self.raw = raw
        super().__init__(provider_name, message)


def schema_instruction(schema: type[BaseModel]) -> str:
    """Instruction appended to the system prompt so the model answers in JSON."""
    rendered = json.dumps(schema.model_json_schema(), indent=2)
    return (
        "\n\nYou MUST respond with valid JSON matching this schema:\n"
        f"{rendered}\n\n"
        "Respond ONLY with the JSON object, no other text."
    )


def _strip_code_fence(text: str) -> str:
    content = text.strip()
    if content.startswith("```json"):
        content = content[7:]
    elif content.startswith("```"):
        content = content[3:]
    if content.endswith("```"):
        content = content[:-3]
    return content.strip()


def parse_structured(provider_name: str, raw: str, schema: type[T]) -> T:
    """Decode a JSON reply and validate it against schema.

    Raises:
        ShapeMismatchError: If the reply is not JSON or fails validation.
    """
    try:
        data = json.loads(_strip_code_fence(raw))
    except json.JSONDecodeError as exc:
        raise ShapeMismatchError(provider_name, f"Reply is not valid JSON: {exc}", raw) from exc
    try:
        return schema.model_validate(data)
    except ValidationError as exc:
        raise ShapeMismatchError(
            provider_name, f"Reply does not match {schema.__name__}: {exc}", raw
        ) from exc


class LLMProvider(ABC):
    """Abstract base for all completion providers."""

    @abstractmethod
    def name(self) -> str:
        """Return the short provider name (e.g. 'together', 'claude')."""
        ...

    @abstractmethod
    def model_string(self) -> str:
        """Return the actual model identifier string."""
        ...

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float,
        max_tokens: int,
        schema: type[T],
    ) -> Completion:
        """Run one completion and validate the reply against schema.

        Returns:
            Completion whose content is an instance of schema.

        Raises:
            ProviderError: On API failure, timeout, or empty reply.
            ShapeMismatchError: If the reply does not fit schema.
        """
        ...
