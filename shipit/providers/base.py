from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional

import httpx

from ..config import ProviderConfig, RuntimeSettings
from ..exceptions import ProviderHTTPError, UnknownModelError


def raise_for_status(provider: str, response: httpx.Response) -> None:
    """Translate an HTTP error response into the provider error family."""
    status = response.status_code
    if status < 400:
        return
    try:
        data = response.json()
        err = data.get("error") if isinstance(data, dict) else None
        detail = err.get("message") if isinstance(err, dict) else response.text
    except ValueError:
        detail = response.text
    error_cls = UnknownModelError if status == 404 else ProviderHTTPError
    raise error_cls(
        f"{provider} error {status}: {detail or '<no body>'}",
        status_code=status,
        response_headers=dict(response.headers),
    )


class BaseDriver(ABC):
    """Abstract base for provider-specific structured generation.

    Each driver encapsulates one provider's HTTP/client call patterns and
    the way that provider is asked for schema-constrained JSON. Parsing,
    validation and retries stay in LLMClient so every provider behaves the
    same way above this line.
    """

    def __init__(
        self,
        config: ProviderConfig,
        settings: Optional[RuntimeSettings] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.config = config
        self.settings = settings or RuntimeSettings()
        self._api_key = config.resolve_api_key(env)
        self._request_timeout = self.settings.request_timeout

    @abstractmethod
    def generate_json(
        self,
        system: str,
        prompt: str,
        schema_name: str,
        json_schema: Dict[str, Any],
    ) -> str:
        """Return the raw JSON text of one object conforming to ``json_schema``.

        Transport failures must be raised as ``ProviderHTTPError`` or
        ``ProviderConnectionError``; an answer without any structured payload
        raises ``NoStructuredOutputError``.
        """
        raise NotImplementedError
