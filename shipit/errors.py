"""Turn provider failures into one actionable sentence for the user."""

from __future__ import annotations

import math
from typing import Optional

from .exceptions import (
    ConfigError,
    MalformedOutputError,
    NoStructuredOutputError,
    ProviderConnectionError,
    ProviderHTTPError,
    RetryError,
    SchemaValidationError,
    UnknownModelError,
)


def _seconds(raw: str, divisor: float) -> Optional[int]:
    try:
        value = float(raw)
    except ValueError:
        return None
    if math.isnan(value) or value < 0:
        return None
    return math.ceil(value / divisor)


def retry_after_hint(error: ProviderHTTPError) -> str:
    headers = error.response_headers
    retry_after_ms = headers.get("retry-after-ms")
    if retry_after_ms:
        seconds = _seconds(retry_after_ms, 1000)
        if seconds is not None:
            return f" Retry after ~{seconds}s."
    retry_after = headers.get("retry-after")
    if retry_after:
        seconds = _seconds(retry_after, 1)
        if seconds is not None:
            return f" Retry after ~{seconds}s."
    return ""


def format_http_error(error: ProviderHTTPError) -> str:
    status = error.status_code
    if status == 429:
        return (
            "Rate limit hit (429). Split large diffs, retry later, or pick "
            f"another provider/model.{retry_after_hint(error)}"
        )
    if status == 413:
        return (
            "Request too large for the provider (413). Split your diff into "
            "smaller commits or use a model with higher context limits."
        )
    if status in (401, 403):
        return (
            "Provider authentication failed. Verify the API key and account "
            "access for the selected provider."
        )
    if status == 400:
        return (
            "Provider rejected the request (400). Check model/provider "
            f"compatibility and request format. {error}"
        )
    if status is not None:
        return f"AI provider call failed with status {status}. {error}"
    return f"AI provider call failed. {error}"


def format_provider_error(error: BaseException) -> str:
    """Map any failure from the generation step to a user-facing message."""
    if isinstance(error, UnknownModelError):
        return (
            "Unknown model for selected provider. Check `SHIPIT_PROVIDER` and "
            f"`SHIPIT_MODEL`. {error}"
        )
    if isinstance(error, ConfigError):
        return f"Missing or invalid API key configuration. {error}"
    if isinstance(error, ProviderHTTPError):
        return format_http_error(error)
    if isinstance(error, ProviderConnectionError):
        return f"AI provider call failed. {error}"
    if isinstance(error, RetryError):
        return f"AI request failed after retries. {format_provider_error(error.last_error)}"
    if isinstance(error, MalformedOutputError):
        return (
            "Provider returned malformed structured output. Retry, split the "
            "diff, or switch model/provider."
        )
    if isinstance(error, SchemaValidationError):
        return (
            "Provider output did not match the expected schema. Retry, split "
            "the diff, or switch model/provider."
        )
    if isinstance(error, NoStructuredOutputError):
        return (
            "Provider did not return valid structured output. Retry or use a "
            "different model/provider."
        )
    return str(error) or error.__class__.__name__
