"""Configuration management for shipit.

Provider selection is a pure function of an environment mapping plus the
static registry below. Nothing here touches the network; the resolved
``ProviderConfig`` is turned into a live client by ``shipit.llm``.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

PROVIDER_ENV = "SHIPIT_PROVIDER"
MODEL_ENV = "SHIPIT_MODEL"
MODEL_ID_PATTERN = re.compile(r"^[A-Za-z0-9._:/-]+$")


@dataclass(frozen=True)
class ProviderSpec:
    """Static description of a supported provider."""

    provider_label: str
    default_model_id: str
    default_model_name: str
    required_api_key_env: str
    endpoint: str


# Insertion order is the fallback priority order.
PROVIDER_REGISTRY: Dict[str, ProviderSpec] = {
    "google": ProviderSpec(
        provider_label="Google",
        default_model_id="gemini-3-flash-preview",
        default_model_name="Gemini 3 Flash Preview",
        required_api_key_env="GOOGLE_GENERATIVE_AI_API_KEY",
        endpoint="https://generativelanguage.googleapis.com/v1beta",
    ),
    "openai": ProviderSpec(
        provider_label="OpenAI",
        default_model_id="gpt-5.1-codex-mini",
        default_model_name="GPT-5.1 Codex Mini",
        required_api_key_env="OPENAI_API_KEY",
        endpoint="https://api.openai.com/v1",
    ),
    "anthropic": ProviderSpec(
        provider_label="Anthropic",
        default_model_id="claude-haiku-4-5",
        default_model_name="Claude Haiku 4.5",
        required_api_key_env="ANTHROPIC_API_KEY",
        endpoint="https://api.anthropic.com",
    ),
    "groq": ProviderSpec(
        provider_label="Groq",
        default_model_id="moonshotai/kimi-k2-instruct-0905",
        default_model_name="Kimi K2 0905",
        required_api_key_env="GROQ_API_KEY",
        endpoint="https://api.groq.com/openai/v1",
    ),
}


@dataclass(frozen=True)
class ProviderConfig:
    """Resolved provider/model selection for one invocation."""

    id: str
    provider_label: str
    model_id: str
    display_name: str
    required_api_key_env: str
    endpoint: str

    def resolve_api_key(self, env: Optional[Mapping[str, str]] = None) -> Optional[str]:
        """Return the API key from the configured environment variable."""
        source = os.environ if env is None else env
        return source.get(self.required_api_key_env)


@dataclass
class RuntimeSettings:
    """Tunables read from ``SHIPIT_*`` environment variables."""

    request_timeout: float = 60.0
    max_attempts: int = 3
    untracked_max_files: int = 20
    untracked_max_chars: int = 12000


def list_supported_providers() -> str:
    return ", ".join(PROVIDER_REGISTRY)


def detect_available_providers(
    env: Optional[Mapping[str, str]] = None,
) -> List[str]:
    """Return provider ids whose API key variable is set, in priority order."""
    env_dict: Mapping[str, str] = os.environ if env is None else env
    return [
        provider_id
        for provider_id, spec in PROVIDER_REGISTRY.items()
        if env_dict.get(spec.required_api_key_env)
    ]


def _create_resolution(provider_id: str, spec: ProviderSpec, model_id: str) -> ProviderConfig:
    if not MODEL_ID_PATTERN.fullmatch(model_id):
        raise ConfigError(
            f"Invalid `{MODEL_ENV}` value `{model_id}`. Use only letters, "
            'numbers, ".", "_", "-", "/", and ":".'
        )
    is_default = model_id == spec.default_model_id
    return ProviderConfig(
        id=provider_id,
        provider_label=spec.provider_label,
        model_id=model_id,
        display_name=spec.default_model_name if is_default else model_id,
        required_api_key_env=spec.required_api_key_env,
        endpoint=spec.endpoint,
    )


def resolve_provider_config(env: Optional[Mapping[str, str]] = None) -> ProviderConfig:
    """Pick the provider and model to use from ``env``.

    An explicit ``SHIPIT_PROVIDER`` (optionally with ``SHIPIT_MODEL``) wins;
    otherwise the first registry entry with an API key set is used with its
    default model. Raises ``ConfigError`` naming the variable to fix.
    """
    env_dict: Mapping[str, str] = os.environ if env is None else env
    provider_raw = env_dict.get(PROVIDER_ENV)
    model_raw = env_dict.get(MODEL_ENV)
    provider_override = provider_raw.strip().lower() if provider_raw is not None else None
    model_override = model_raw.strip() if model_raw is not None else None

    if provider_raw is not None and not provider_override:
        raise ConfigError(
            f"`{PROVIDER_ENV}` cannot be empty. Provide one of: "
            f"{list_supported_providers()}."
        )

    if model_raw is not None and not model_override:
        raise ConfigError(
            f"`{MODEL_ENV}` cannot be empty. Provide a model id or unset the variable."
        )

    if model_raw is not None and not provider_override:
        raise ConfigError(
            f"`{MODEL_ENV}` requires `{PROVIDER_ENV}` to be set. Example: "
            f"`{PROVIDER_ENV}=openai {MODEL_ENV}=gpt-5.1-codex-mini`."
        )

    if provider_override:
        spec = PROVIDER_REGISTRY.get(provider_override)
        if spec is None:
            raise ConfigError(
                f"Invalid `{PROVIDER_ENV}` value `{provider_override}`. "
                f"Supported providers: {list_supported_providers()}."
            )
        if not env_dict.get(spec.required_api_key_env):
            raise ConfigError(
                f"Missing API key for {spec.provider_label}. Set "
                f"`{spec.required_api_key_env}` before using "
                f"`{PROVIDER_ENV}={provider_override}`."
            )
        resolved = _create_resolution(
            provider_override, spec, model_override or spec.default_model_id
        )
        logger.debug("provider forced: %s model=%s", resolved.id, resolved.model_id)
        return resolved

    available = detect_available_providers(env_dict)
    if available:
        provider_id = available[0]
        spec = PROVIDER_REGISTRY[provider_id]
        logger.debug("provider detected: %s (candidates=%s)", provider_id, available)
        return _create_resolution(provider_id, spec, spec.default_model_id)

    raise ConfigError(
        "No AI provider API key found. Set one of the following:\n"
        + "\n".join(f"- {spec.required_api_key_env}" for spec in PROVIDER_REGISTRY.values())
    )


def _env_number(env: Mapping[str, str], name: str, default, cast):
    raw = env.get(name)
    if not raw:
        return default
    try:
        value = cast(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r", name, raw)
        return default
    return value if value > 0 else default


def load_runtime_settings(env: Optional[Mapping[str, str]] = None) -> RuntimeSettings:
    """Build ``RuntimeSettings`` from ``SHIPIT_*`` variables."""
    env_dict: Mapping[str, str] = os.environ if env is None else env
    defaults = RuntimeSettings()
    return RuntimeSettings(
        request_timeout=_env_number(
            env_dict, "SHIPIT_LLM_REQUEST_TIMEOUT", defaults.request_timeout, float
        ),
        max_attempts=_env_number(
            env_dict, "SHIPIT_LLM_MAX_ATTEMPTS", defaults.max_attempts, int
        ),
        untracked_max_files=_env_number(
            env_dict, "SHIPIT_UNTRACKED_MAX_FILES", defaults.untracked_max_files, int
        ),
        untracked_max_chars=_env_number(
            env_dict, "SHIPIT_UNTRACKED_MAX_CHARS", defaults.untracked_max_chars, int
        ),
    )


def describe_provider(config: ProviderConfig) -> str:
    return f"{config.provider_label} · {config.display_name}"
