from __future__ import annotations

import logging
from typing import Any, Dict

import httpx

from ..exceptions import NoStructuredOutputError, ProviderConnectionError
from .base import BaseDriver, raise_for_status

logger = logging.getLogger(__name__)


class GoogleDriver(BaseDriver):
    """Driver for the Gemini ``generateContent`` endpoint with a JSON schema."""

    def generate_json(
        self,
        system: str,
        prompt: str,
        schema_name: str,
        json_schema: Dict[str, Any],
    ) -> str:
        base = self.config.endpoint.rstrip("/")
        url = f"{base}/models/{self.config.model_id}:generateContent"
        headers = {
            "x-goog-api-key": self._api_key or "",
            "content-type": "application/json",
        }
        payload = {
            "systemInstruction": {"parts": [{"text": system}]},
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseJsonSchema": json_schema,
            },
        }
        logger.debug("Google request model=%s schema=%s", self.config.model_id, schema_name)
        try:
            response = httpx.post(
                url,
                headers=headers,
                json=payload,
                timeout=self._request_timeout,
            )
        except httpx.HTTPError as e:
            raise ProviderConnectionError(
                f"Google network error during generateContent request: {e}"
            ) from e
        raise_for_status("Google", response)

        try:
            data = response.json()
        except ValueError as e:
            raise NoStructuredOutputError("Google returned a non-JSON body") from e
        candidates = data.get("candidates") or []
        if not candidates:
            feedback = data.get("promptFeedback") or {}
            raise NoStructuredOutputError(
                "Google returned no candidates"
                + (f" (blockReason={feedback['blockReason']})" if feedback.get("blockReason") else "")
            )
        parts = (candidates[0].get("content") or {}).get("parts") or []
        text = "".join(p.get("text", "") for p in parts if isinstance(p, dict))
        if not text.strip():
            raise NoStructuredOutputError(
                f"Google returned an empty response (finishReason={candidates[0].get('finishReason')})"
            )
        return text
