from __future__ import annotations

import json
import logging
from typing import Any, Dict

import httpx

from ..exceptions import NoStructuredOutputError, ProviderConnectionError
from .base import BaseDriver, raise_for_status

logger = logging.getLogger(__name__)

ANTHROPIC_VERSION = "2023-06-01"


class AnthropicDriver(BaseDriver):
    """Driver handling Anthropic API calls (messages endpoint).

    Anthropic has no JSON response mode, so the schema is offered as the only
    tool and the model is forced to call it; the tool input is the object.
    """

    MAX_TOKENS = 8192

    def generate_json(
        self,
        system: str,
        prompt: str,
        schema_name: str,
        json_schema: Dict[str, Any],
    ) -> str:
        url = self.config.endpoint.rstrip("/") + "/v1/messages"
        headers = {
            "x-api-key": self._api_key or "",
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
        }
        payload = {
            "model": self.config.model_id,
            "max_tokens": self.MAX_TOKENS,
            "system": system,
            "messages": [
                {"role": "user", "content": [{"type": "text", "text": prompt}]}
            ],
            "tools": [
                {
                    "name": schema_name,
                    "description": "Return the structured result.",
                    "input_schema": json_schema,
                }
            ],
            "tool_choice": {"type": "tool", "name": schema_name},
        }
        logger.debug("Anthropic request model=%s schema=%s", self.config.model_id, schema_name)
        try:
            response = httpx.post(
                url,
                headers=headers,
                json=payload,
                timeout=self._request_timeout,
            )
        except httpx.HTTPError as e:
            raise ProviderConnectionError(
                f"Anthropic network error during messages request: {e}"
            ) from e
        raise_for_status("Anthropic", response)

        try:
            data = response.json()
        except ValueError as e:
            raise NoStructuredOutputError("Anthropic returned a non-JSON body") from e
        for chunk in data.get("content") or []:
            if chunk.get("type") == "tool_use" and chunk.get("name") == schema_name:
                return json.dumps(chunk.get("input"))
        raise NoStructuredOutputError(
            f"Anthropic response had no `{schema_name}` tool call "
            f"(stop_reason={data.get('stop_reason')})"
        )
