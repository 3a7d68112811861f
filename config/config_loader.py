"""Load settings.yaml into typed dataclasses. Checks API keys at startup."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

_CONFIG_DIR = Path(__file__).parent
_SETTINGS_PATH = _CONFIG_DIR / "settings.yaml"
_DEFAULT_PERSONAS_DIR = _CONFIG_DIR / "personas"

_SUPPORTED_SDKS = {"openai", "anthropic", "gemini"}
_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass
class ModelConfig:
    name: str
    sdk: str               # "openai", "anthropic", "gemini"
    model: str
    api_key_env: str
    timeout_sec: int
    max_tokens: int
    base_url: str | None = None


@dataclass
class DefaultsConfig:
    provider: str
    data_dir: Path
    output_dir: Path
    personas_dir: Path = _DEFAULT_PERSONAS_DIR
    parallel_execution: bool = True
    temperature: float = 0.7
    max_tokens: int = 1024
    currency: str = "$"
    active_personas: list[str] = field(default_factory=list)


@dataclass
class InboxConfig:
    dir: Path
    archive_dir: Path


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    models: dict[str, ModelConfig]
    inbox: InboxConfig
    available_providers: set[str] = field(default_factory=set)


def _parse_bool(value: object, key: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ValueError(f"Invalid boolean for '{key}': {value!r}")


def _require(section: dict, key: str, where: str) -> object:
    if key not in section:
        raise ValueError(f"Missing required setting '{where}.{key}'")
    return section[key]


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if the settings file is missing and ValueError
    if a required key is absent or malformed. Missing API keys are only
    logged; callers check available_providers.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    defaults_raw = _require(raw, "defaults", "settings")
    personas_dir_raw = defaults_raw.get("personas_dir")
    try:
        defaults = DefaultsConfig(
            provider=str(_require(defaults_raw, "provider", "defaults")),
            data_dir=Path(_require(defaults_raw, "data_dir", "defaults")),
            output_dir=Path(_require(defaults_raw, "output_dir", "defaults")),
            personas_dir=Path(personas_dir_raw) if personas_dir_raw else _DEFAULT_PERSONAS_DIR,
            parallel_execution=_parse_bool(defaults_raw.get("parallel_execution", True), "parallel_execution"),
            temperature=float(defaults_raw.get("temperature", 0.7)),
            max_tokens=int(defaults_raw.get("max_tokens", 1024)),
            currency=str(defaults_raw.get("currency", "$")),
            active_personas=[str(p) for p in defaults_raw.get("active_personas") or []],
        )
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid 'defaults' section: {exc}") from exc

    env_provider = os.environ.get("FINBOARD_PROVIDER", "").strip()
    if env_provider:
        defaults.provider = env_provider
    env_parallel = os.environ.get("FINBOARD_PARALLEL", "").strip()
    if env_parallel:
        defaults.parallel_execution = _parse_bool(env_parallel, "FINBOARD_PARALLEL")

    inbox_raw = raw.get("inbox") or {}
    inbox = InboxConfig(
        dir=Path(inbox_raw.get("dir", "./inbox")),
        archive_dir=Path(inbox_raw.get("archive_dir", "./inbox/archive")),
    )

    models: dict[str, ModelConfig] = {}
    available_providers: set[str] = set()

    for provider_name, model_raw in (_require(raw, "models", "settings") or {}).items():
        where = f"models.{provider_name}"
        sdk = str(_require(model_raw, "sdk", where))
        if sdk not in _SUPPORTED_SDKS:
            raise ValueError(f"Unsupported sdk '{sdk}' for provider '{provider_name}'")
        model_cfg = ModelConfig(
            name=provider_name,
            sdk=sdk,
            model=str(_require(model_raw, "model", where)),
            api_key_env=str(_require(model_raw, "api_key_env", where)),
            timeout_sec=int(model_raw.get("timeout_sec", 90)),
            max_tokens=int(model_raw.get("max_tokens", 2048)),
            base_url=model_raw.get("base_url"),
        )
        models[provider_name] = model_cfg

        api_key = os.environ.get(model_cfg.api_key_env, "").strip()
        if api_key:
            available_providers.add(provider_name)
            logger.info("Provider available: %s", provider_name)
        else:
            logger.info(
                "Provider skipped (no API key): %s — set %s in .env",
                provider_name,
                model_cfg.api_key_env,
            )

    return AppConfig(
        defaults=defaults,
        models=models,
        inbox=inbox,
        available_providers=available_providers,
    )
