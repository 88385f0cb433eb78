# tests/test_llm.py
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from briefsmith.errors import (
    BackendError,
    EmptyResponseError,
    GenerationCancelled,
    GenerationError,
    PromptTooLargeError,
    SchemaValidationError,
)
from briefsmith.llm import (
    CancellationToken,
    GenerationConfig,
    OpenAIBackend,
    RetryPolicy,
    SchemaGenerationClient,
    parse_json_text,
    resolve_thinking_budget,
)


def test_generate_retries_then_succeeds(client, backend, sleeps):
    backend.queue(BackendError("boom"), BackendError("boom"), "ok")
    assert client.generate("gpt-5", "sys", "user", operation="t") == "ok"
    assert len(backend.calls) == 3
    assert sleeps.calls == [2.0, 2.0]


def test_generate_gives_up_after_max_attempts(client, backend, sleeps):
    backend.queue(BackendError("a"), BackendError("b"), BackendError("c"))
    with pytest.raises(GenerationError) as exc:
        client.generate("gpt-5", "sys", "user", operation="outline")
    assert exc.value.attempts == 3
    assert isinstance(exc.value.cause, BackendError)
    assert sleeps.calls == [2.0, 2.0]


def test_custom_policy_two_attempts(client, backend, sleeps):
    policy = RetryPolicy(max_attempts=2, delay_seconds=1.0, sleep=sleeps)
    backend.queue(BackendError("a"), BackendError("b"))
    with pytest.raises(GenerationError):
        client.generate("gpt-5", "s", "u", retry_policy=policy)
    assert len(backend.calls) == 2
    assert sleeps.calls == [1.0]


def test_non_retryable_error_fails_immediately(sleeps):
    policy = RetryPolicy(max_attempts=3, retryable=lambda e: False, sleep=sleeps)
    calls = []

    def op():
        calls.append(1)
        raise ValueError("nope")

    with pytest.raises(GenerationError) as exc:
        policy.run(op, label="x")
    assert exc.value.attempts == 1
    assert calls == [1]
    assert sleeps.calls == []


def test_empty_and_unparseable_responses_are_retried(client, backend):
    backend.queue("", "not json", '```json\n{"a": 1}\n```')
    assert client.generate_json("gpt-5", "s", "u", {"type": "object"}) == {"a": 1}
    assert len(backend.calls) == 3


def test_validate_failure_counts_as_attempt(client, backend):
    def validate(data):
        if data["n"] < 2:
            raise SchemaValidationError("too small")
        return data["n"]

    backend.queue({"n": 1}, {"n": 2})
    assert client.generate_json("gpt-5", "s", "u", {"type": "object"}, validate=validate) == 2


def test_cancelled_token_stops_before_calling_backend(client, backend):
    token = CancellationToken()
    token.cancel()
    with pytest.raises(GenerationCancelled):
        client.generate("gpt-5", "s", "u", cancel_token=token)
    assert backend.calls == []


def test_cancel_closes_registered_handles():
    class Handle:
        closed = False

        def close(self):
            self.closed = True

    token, h = CancellationToken(), Handle()
    with token.register(h):
        token.cancel()
    assert h.closed
    assert token.cancelled


def test_thinking_budget_resolution():
    assert resolve_thinking_budget("gpt-5", "high") == 24576
    # main-tier models have no minimal level
    assert resolve_thinking_budget("gpt-5", "minimal") == 2048
    assert resolve_thinking_budget("gpt-5-mini", "minimal") == 1024
    assert resolve_thinking_budget("gpt-4o", "high") is None
    assert resolve_thinking_budget("gpt-5", None) is None


def test_thinking_effort_reaches_backend_config(client, backend):
    backend.queue("ok")
    client.generate("gpt-5", "s", "u", thinking_effort="medium")
    assert backend.calls[0]["config"].thinking_budget == 8192


def test_openai_request_kwargs():
    b = OpenAIBackend(api_key="test")
    schema = {"type": "object"}
    kw = b._request_kwargs("gpt-5", "s", "u", GenerationConfig(response_schema=schema, thinking_budget=8192))
    assert kw["reasoning_effort"] == "medium"
    assert "temperature" not in kw
    assert kw["response_format"]["json_schema"]["schema"] is schema

    kw = b._request_kwargs("gpt-4o", "s", "u", GenerationConfig())
    assert kw["temperature"] == 0.3
    assert "response_format" not in kw


def test_stream_yields_chunks(client, backend):
    backend.queue_stream(["Hel", "", "lo"])
    assert list(client.stream("gpt-5", "s", "u")) == ["Hel", "lo"]


def test_empty_stream_raises(client, backend):
    backend.queue_stream([])
    with pytest.raises(EmptyResponseError):
        list(client.stream("gpt-5", "s", "u", operation="section"))


def test_parse_json_text():
    assert parse_json_text('```json\n[1, 2]\n```') == [1, 2]
    with pytest.raises(SchemaValidationError):
        parse_json_text("{broken")


class _Stream:
    """Iterable stream handle that remembers being closed."""

    def __init__(self, items):
        self.items = items
        self.closed = 0

    def __iter__(self):
        return iter(self.items)

    def close(self):
        self.closed += 1


def _delta(text):
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=text))])


def test_cancel_mid_stream_through_client():
    handle = _Stream(["a", "b", "c"])
    backend = MagicMock()
    backend.stream.return_value = handle
    client = SchemaGenerationClient(backend=backend)
    token, got = CancellationToken(), []

    with pytest.raises(GenerationCancelled):
        for chunk in client.stream("gpt-5", "s", "u", cancel_token=token):
            got.append(chunk)
            token.cancel()
    assert got == ["a"]
    assert handle.closed


def test_cancel_mid_stream_closes_openai_response():
    response = _Stream([_delta("a"), _delta("b"), _delta("c")])
    backend = OpenAIBackend(api_key="test")
    backend._client = MagicMock()
    backend._client.chat.completions.create.return_value = response
    client = SchemaGenerationClient(backend=backend)
    token, got = CancellationToken(), []

    with pytest.raises(GenerationCancelled):
        for chunk in client.stream("gpt-5", "s", "u", cancel_token=token):
            got.append(chunk)
            token.cancel()
    assert got == ["a"]
    assert response.closed
    assert backend._client.chat.completions.create.call_args.kwargs["stream"] is True


def test_prompt_over_hard_limit_is_refused(backend):
    client = SchemaGenerationClient(backend=backend, hard_limit=10)
    with pytest.raises(PromptTooLargeError):
        client.generate("gpt-5", "s", "u" * 100)
    with pytest.raises(PromptTooLargeError):
        list(client.stream("gpt-5", "s", "u" * 100))
    assert backend.calls == []
