"""Provider-neutral LLM client for shipit.

The client picks a driver for the resolved provider, asks it for JSON that
matches one of the models in ``shipit.schema`` and validates the answer once,
here, so nothing downstream has to re-check the model's output.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Dict, List, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from .config import ProviderConfig, RuntimeSettings
from .exceptions import (
    LLMError,
    MalformedOutputError,
    NoStructuredOutputError,
    ProviderConnectionError,
    ProviderHTTPError,
    RetryError,
    SchemaValidationError,
    UnknownModelError,
)
from .prompts import SYSTEM_INSTRUCTION
from .providers.anthropic_driver import AnthropicDriver
from .providers.base import BaseDriver
from .providers.google_driver import GoogleDriver
from .providers.groq_driver import GroqDriver
from .providers.openai_driver import OpenAIDriver
from .schema import (
    CommitGroupEnvelope,
    CommitGroupProposal,
    PullRequestDraft,
    strict_json_schema,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

DRIVERS: Dict[str, Type[BaseDriver]] = {
    "google": GoogleDriver,
    "openai": OpenAIDriver,
    "anthropic": AnthropicDriver,
    "groq": GroqDriver,
}

RETRYABLE_STATUS = frozenset({408, 409, 429})

PR_SYSTEM_INSTRUCTION = (
    "You write pull request titles and descriptions. Respond only with the "
    "requested structured object."
)


def is_retryable(error: Exception) -> bool:
    if isinstance(error, UnknownModelError):
        return False
    if isinstance(error, ProviderHTTPError):
        status = error.status_code
        return status is not None and (status in RETRYABLE_STATUS or status >= 500)
    return isinstance(error, (ProviderConnectionError, NoStructuredOutputError))


class LLMClient:
    """Provider-aware client for structured commit and PR generation."""

    def __init__(
        self,
        config: ProviderConfig,
        settings: Optional[RuntimeSettings] = None,
        env: Optional[Mapping[str, str]] = None,
        driver: Optional[BaseDriver] = None,
        retry_delay: float = 1.0,
    ) -> None:
        self.config = config
        self.settings = settings or RuntimeSettings()
        self.retry_delay = retry_delay

        if driver is None:
            driver_cls = DRIVERS.get(config.id)
            if driver_cls is None:
                raise LLMError(f"Unsupported provider: {config.id}")
            driver = driver_cls(config, self.settings, env)
        self._driver = driver

    def _parse(self, raw: str, model: Type[ModelT]) -> ModelT:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise MalformedOutputError(f"Response is not valid JSON: {e}") from e
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise SchemaValidationError(
                f"Response does not match {model.__name__}: {e}"
            ) from e

    def _generate(
        self,
        system: str,
        prompt: str,
        schema_name: str,
        model: Type[ModelT],
    ) -> ModelT:
        json_schema = strict_json_schema(model)
        max_attempts = max(1, self.settings.max_attempts)
        last_error: Optional[LLMError] = None
        for attempt in range(1, max_attempts + 1):
            logger.debug(
                "llm.attempt %d/%d provider=%s model=%s",
                attempt,
                max_attempts,
                self.config.id,
                self.config.model_id,
            )
            try:
                raw = self._driver.generate_json(system, prompt, schema_name, json_schema)
                return self._parse(raw, model)
            except LLMError as e:
                if not is_retryable(e):
                    raise
                last_error = e
                logger.debug("llm.retryable attempt=%d error=%s", attempt, e)
                if attempt < max_attempts and self.retry_delay > 0:
                    time.sleep(self.retry_delay * attempt)

        raise RetryError(
            f"Failed after {max_attempts} attempts: {last_error}",
            last_error=last_error,
            attempts=max_attempts,
        )

    def generate_commit_groups(
        self, system: str, prompt: str
    ) -> List[CommitGroupProposal]:
        """Ask the provider for an ordered list of commit groups."""
        envelope = self._generate(system, prompt, "commit_groups", CommitGroupEnvelope)
        return envelope.commits

    def generate_pull_request(self, prompt: str) -> PullRequestDraft:
        return self._generate(
            PR_SYSTEM_INSTRUCTION, prompt, "pull_request", PullRequestDraft
        )


__all__ = ["LLMClient", "SYSTEM_INSTRUCTION", "is_retryable"]
