from shipit.exceptions import (
    CommitError,
    ConfigError,
    GitError,
    LLMError,
    MalformedOutputError,
    NoStructuredOutputError,
    ProviderConnectionError,
    ProviderHTTPError,
    RepositoryStateError,
    RetryError,
    SchemaValidationError,
    ShipitError,
    StagingError,
    UnknownModelError,
)


def test_exceptions_hierarchy_and_str():
    # Given exception classes
    # When instantiating
    errors = [
        ConfigError("cfg"),
        RepositoryStateError("state"),
        GitError("git"),
        LLMError("llm"),
    ]

    # Then hierarchy holds
    for error in errors:
        assert isinstance(error, ShipitError)
    assert issubclass(StagingError, GitError)
    assert issubclass(CommitError, GitError)
    assert issubclass(UnknownModelError, ProviderHTTPError)
    assert issubclass(ProviderConnectionError, LLMError)
    assert issubclass(MalformedOutputError, NoStructuredOutputError)
    assert issubclass(SchemaValidationError, NoStructuredOutputError)
    # And messages are retained
    assert [str(e) for e in errors] == ["cfg", "state", "git", "llm"]


def test_http_error_normalizes_headers():
    err = ProviderHTTPError("boom", 429, {"Retry-After": 5})

    assert err.status_code == 429
    assert err.response_headers == {"retry-after": "5"}
    assert ProviderHTTPError("x").response_headers == {}


def test_retry_error_keeps_last_error():
    inner = ProviderConnectionError("reset")
    err = RetryError("Failed after 2 attempts: reset", last_error=inner, attempts=2)

    assert err.last_error is inner
    assert err.attempts == 2
    assert isinstance(err, LLMError)
