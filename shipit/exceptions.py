"""Custom exceptions for shipit."""

from __future__ import annotations

from typing import Mapping, Optional


class ShipitError(Exception):
    """Base exception for shipit."""


class ConfigError(ShipitError):
    """Raised when provider or model configuration is invalid."""


class RepositoryStateError(ShipitError):
    """Raised when the working tree is not in a state we can commit from."""


class GitError(ShipitError):
    """Raised when a Git command fails."""


class StagingError(GitError):
    """Raised when staging the files of a commit group fails."""


class CommitError(GitError):
    """Raised when creating a commit fails."""


class LLMError(ShipitError):
    """Raised when a provider call fails."""


class ProviderHTTPError(LLMError):
    """Provider answered with a non-success HTTP status."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_headers: Optional[Mapping[str, str]] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response_headers = {
            str(k).lower(): str(v) for k, v in (response_headers or {}).items()
        }


class UnknownModelError(ProviderHTTPError):
    """Provider does not know the requested model."""


class ProviderConnectionError(LLMError):
    """The provider could not be reached."""


class NoStructuredOutputError(LLMError):
    """Provider returned no structured object at all."""


class MalformedOutputError(NoStructuredOutputError):
    """Provider output could not be parsed as JSON."""


class SchemaValidationError(NoStructuredOutputError):
    """Provider output parsed but did not match the expected schema."""


class RetryError(LLMError):
    """All attempts for a provider call failed."""

    def __init__(self, message: str, last_error: Optional[Exception], attempts: int) -> None:
        super().__init__(message)
        self.last_error = last_error
        self.attempts = attempts
