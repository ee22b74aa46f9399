from __future__ import annotations

from typing import Any, Dict

from .openai_driver import OpenAIDriver


class GroqDriver(OpenAIDriver):
    """Driver for Groq's OpenAI-compatible endpoint.

    Groq only enforces strict schemas for a handful of models, so the schema
    is sent in best-effort mode and validation is left to LLMClient.
    """

    def _build_request(
        self,
        system: str,
        prompt: str,
        schema_name: str,
        json_schema: Dict[str, Any],
    ) -> Dict[str, Any]:
        kwargs = super()._build_request(system, prompt, schema_name, json_schema)
        kwargs["response_format"]["json_schema"]["strict"] = False
        return kwargs
