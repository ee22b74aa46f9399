import json
from types import SimpleNamespace

import httpx
import openai
import pytest

from shipit.config import RuntimeSettings, resolve_provider_config
from shipit.exceptions import (
    NoStructuredOutputError,
    ProviderConnectionError,
    ProviderHTTPError,
    UnknownModelError,
)
from shipit.providers.anthropic_driver import ANTHROPIC_VERSION, AnthropicDriver
from shipit.providers.google_driver import GoogleDriver
from shipit.providers.groq_driver import GroqDriver
from shipit.providers.openai_driver import OpenAIDriver

SCHEMA = {
    "type": "object",
    "properties": {"title": {"type": "string"}},
    "required": ["title"],
    "additionalProperties": False,
}


def _config(env):
    return resolve_provider_config(env)


def _capture_post(monkeypatch, response):
    calls = []

    def fake_post(url, headers=None, json=None, timeout=None):
        calls.append({"url": url, "headers": headers, "json": json, "timeout": timeout})
        if isinstance(response, Exception):
            raise response
        return response

    monkeypatch.setattr(httpx, "post", fake_post)
    return calls


# --- Anthropic -------------------------------------------------------------


def test_anthropic_forces_tool_call_and_returns_its_input(monkeypatch):
    env = {"ANTHROPIC_API_KEY": "sk-ant"}
    body = {
        "content": [
            {"type": "text", "text": "thinking"},
            {"type": "tool_use", "name": "pull_request", "input": {"title": "T"}},
        ]
    }
    calls = _capture_post(monkeypatch, httpx.Response(200, json=body))
    driver = AnthropicDriver(_config(env), RuntimeSettings(request_timeout=7), env)

    raw = driver.generate_json("sys", "prompt", "pull_request", SCHEMA)

    assert json.loads(raw) == {"title": "T"}
    call = calls[0]
    assert call["url"] == "https://api.anthropic.com/v1/messages"
    assert call["headers"]["x-api-key"] == "sk-ant"
    assert call["headers"]["anthropic-version"] == ANTHROPIC_VERSION
    assert call["timeout"] == 7
    assert call["json"]["system"] == "sys"
    assert call["json"]["tools"][0]["input_schema"] == SCHEMA
    assert call["json"]["tool_choice"] == {"type": "tool", "name": "pull_request"}


def test_anthropic_without_tool_call_is_no_structured_output(monkeypatch):
    env = {"ANTHROPIC_API_KEY": "k"}
    _capture_post(
        monkeypatch,
        httpx.Response(200, json={"content": [{"type": "text"}], "stop_reason": "max_tokens"}),
    )

    with pytest.raises(NoStructuredOutputError) as ei:
        AnthropicDriver(_config(env), env=env).generate_json("s", "p", "x", SCHEMA)
    assert "max_tokens" in str(ei.value)


def test_anthropic_http_errors(monkeypatch):
    env = {"ANTHROPIC_API_KEY": "k"}
    _capture_post(
        monkeypatch,
        httpx.Response(
            429,
            json={"error": {"message": "rate limited"}},
            headers={"Retry-After": "3"},
        ),
    )

    with pytest.raises(ProviderHTTPError) as ei:
        AnthropicDriver(_config(env), env=env).generate_json("s", "p", "x", SCHEMA)

    assert ei.value.status_code == 429
    assert ei.value.response_headers["retry-after"] == "3"
    assert "rate limited" in str(ei.value)


def test_anthropic_transport_failure(monkeypatch):
    env = {"ANTHROPIC_API_KEY": "k"}
    _capture_post(monkeypatch, httpx.ConnectError("refused"))

    with pytest.raises(ProviderConnectionError):
        AnthropicDriver(_config(env), env=env).generate_json("s", "p", "x", SCHEMA)


# --- Google ----------------------------------------------------------------


def test_google_sends_schema_and_joins_text_parts(monkeypatch):
    env = {"GOOGLE_GENERATIVE_AI_API_KEY": "g"}
    body = {"candidates": [{"content": {"parts": [{"text": '{"ti'}, {"text": 'tle": "T"}'}]}}]}
    calls = _capture_post(monkeypatch, httpx.Response(200, json=body))
    config = _config(env)

    raw = GoogleDriver(config, env=env).generate_json("sys", "prompt", "pull_request", SCHEMA)

    assert json.loads(raw) == {"title": "T"}
    call = calls[0]
    assert call["url"].endswith(f"/models/{config.model_id}:generateContent")
    assert call["headers"]["x-goog-api-key"] == "g"
    generation = call["json"]["generationConfig"]
    assert generation["responseMimeType"] == "application/json"
    assert generation["responseJsonSchema"] == SCHEMA


def test_google_unknown_model_is_404(monkeypatch):
    env = {"GOOGLE_GENERATIVE_AI_API_KEY": "g"}
    _capture_post(monkeypatch, httpx.Response(404, text="model not found"))

    with pytest.raises(UnknownModelError) as ei:
        GoogleDriver(_config(env), env=env).generate_json("s", "p", "x", SCHEMA)
    assert "model not found" in str(ei.value)


def test_google_blocked_prompt(monkeypatch):
    env = {"GOOGLE_GENERATIVE_AI_API_KEY": "g"}
    _capture_post(
        monkeypatch,
        httpx.Response(200, json={"promptFeedback": {"blockReason": "SAFETY"}}),
    )

    with pytest.raises(NoStructuredOutputError) as ei:
        GoogleDriver(_config(env), env=env).generate_json("s", "p", "x", SCHEMA)
    assert "SAFETY" in str(ei.value)


# --- OpenAI / Groq ---------------------------------------------------------


class _Completions:
    def __init__(self, result):
        self.result = result
        self.kwargs = None

    def create(self, **kwargs):
        self.kwargs = kwargs
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


def _stub_client(result):
    completions = _Completions(result)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


def _completion(content, refusal=None):
    message = SimpleNamespace(content=content, refusal=refusal)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def test_openai_requests_strict_json_schema():
    env = {"OPENAI_API_KEY": "o"}
    client, completions = _stub_client(_completion('{"title": "T"}'))
    config = _config(env)

    raw = OpenAIDriver(config, env=env, client=client).generate_json(
        "sys", "prompt", "pull_request", SCHEMA
    )

    assert raw == '{"title": "T"}'
    kwargs = completions.kwargs
    assert kwargs["model"] == config.model_id
    assert kwargs["messages"][0] == {"role": "system", "content": "sys"}
    assert kwargs["response_format"]["json_schema"]["strict"] is True
    assert kwargs["response_format"]["json_schema"]["schema"] == SCHEMA


def test_groq_relaxes_strict_mode():
    env = {"GROQ_API_KEY": "q"}
    client, completions = _stub_client(_completion('{"title": "T"}'))

    GroqDriver(_config(env), env=env, client=client).generate_json("s", "p", "x", SCHEMA)

    assert completions.kwargs["response_format"]["json_schema"]["strict"] is False


@pytest.mark.parametrize(
    "result",
    [_completion(""), _completion(None, refusal="I can't"), SimpleNamespace(choices=[])],
)
def test_openai_without_content_is_no_structured_output(result):
    env = {"OPENAI_API_KEY": "o"}
    client, _ = _stub_client(result)

    with pytest.raises(NoStructuredOutputError):
        OpenAIDriver(_config(env), env=env, client=client).generate_json("s", "p", "x", SCHEMA)


def test_openai_status_errors_are_translated():
    env = {"OPENAI_API_KEY": "o"}
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    not_found = openai.NotFoundError(
        "model does not exist",
        response=httpx.Response(404, request=request),
        body=None,
    )
    limited = openai.RateLimitError(
        "slow down",
        response=httpx.Response(429, headers={"retry-after": "2"}, request=request),
        body=None,
    )

    client, _ = _stub_client(not_found)
    with pytest.raises(UnknownModelError):
        OpenAIDriver(_config(env), env=env, client=client).generate_json("s", "p", "x", SCHEMA)

    client, _ = _stub_client(limited)
    with pytest.raises(ProviderHTTPError) as ei:
        OpenAIDriver(_config(env), env=env, client=client).generate_json("s", "p", "x", SCHEMA)
    assert ei.value.status_code == 429
    assert ei.value.response_headers["retry-after"] == "2"


def test_openai_connection_error():
    env = {"OPENAI_API_KEY": "o"}
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    client, _ = _stub_client(openai.APIConnectionError(request=request))

    with pytest.raises(ProviderConnectionError):
        OpenAIDriver(_config(env), env=env, client=client).generate_json("s", "p", "x", SCHEMA)
