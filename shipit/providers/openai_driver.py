from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

import openai

from ..config import ProviderConfig, RuntimeSettings
from ..exceptions import (
    NoStructuredOutputError,
    ProviderConnectionError,
    ProviderHTTPError,
    UnknownModelError,
)
from .base import BaseDriver

logger = logging.getLogger(__name__)


class OpenAIDriver(BaseDriver):
    """Driver for OpenAI and OpenAI-compatible chat completions.

    Structured output uses ``response_format`` with a strict JSON schema.
    The SDK's own retries are disabled; LLMClient owns the retry policy.
    """

    def __init__(
        self,
        config: ProviderConfig,
        settings: Optional[RuntimeSettings] = None,
        env: Optional[Mapping[str, str]] = None,
        client: Any = None,
    ) -> None:
        super().__init__(config, settings, env)
        self._client = client or openai.OpenAI(
            base_url=config.endpoint,
            api_key=self._api_key,
            timeout=self._request_timeout,
            max_retries=0,
        )

    def _build_request(
        self,
        system: str,
        prompt: str,
        schema_name: str,
        json_schema: Dict[str, Any],
    ) -> Dict[str, Any]:
        return {
            "model": self.config.model_id,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            "response_format": {
                "type": "json_schema",
                "json_schema": {
                    "name": schema_name,
                    "schema": json_schema,
                    "strict": True,
                },
            },
        }

    def generate_json(
        self,
        system: str,
        prompt: str,
        schema_name: str,
        json_schema: Dict[str, Any],
    ) -> str:
        kwargs = self._build_request(system, prompt, schema_name, json_schema)
        logger.debug(
            "%s request model=%s schema=%s",
            self.config.provider_label,
            self.config.model_id,
            schema_name,
        )
        try:
            resp = self._client.chat.completions.create(**kwargs)
        except openai.APIStatusError as e:
            headers = dict(e.response.headers) if e.response is not None else {}
            error_cls = UnknownModelError if e.status_code == 404 else ProviderHTTPError
            raise error_cls(
                str(e.message or e), status_code=e.status_code, response_headers=headers
            ) from e
        except openai.APIConnectionError as e:
            raise ProviderConnectionError(
                f"{self.config.provider_label} connection error: {e}"
            ) from e

        try:
            message = resp.choices[0].message
        except (AttributeError, IndexError):
            raise NoStructuredOutputError(
                f"Missing choices in {self.config.provider_label} response"
            ) from None

        refusal = getattr(message, "refusal", None)
        if refusal:
            raise NoStructuredOutputError(f"Model refused the request: {refusal}")
        content = getattr(message, "content", None) or ""
        if not content.strip():
            raise NoStructuredOutputError(
                f"{self.config.provider_label} returned an empty response"
            )
        return content
