# briefsmith/llm.py
import os
import json
import time
import logging
import threading
from contextlib import contextmanager, nullcontext
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Protocol, TypeVar

from openai import OpenAI
from openai import APIError, APIConnectionError, RateLimitError

from briefsmith.config import RETRY_ATTEMPTS, RETRY_DELAY_SECONDS, TOKEN_HARD_LIMIT, TOKEN_WARN_AT
from briefsmith.errors import (
    BackendError,
    EmptyResponseError,
    GenerationCancelled,
    GenerationError,
    PromptTooLargeError,
    SchemaValidationError,
)
from briefsmith.token_budget import check_budget, estimate_tokens

logger = logging.getLogger(__name__)

T = TypeVar("T")

# -----------------------------------------------------------------------------
# Thinking effort
# -----------------------------------------------------------------------------
THINKING_BUDGETS: Dict[str, int] = {
    "high": 24576,
    "medium": 8192,
    "low": 2048,
    "minimal": 1024,
}


@dataclass(frozen=True)
class ModelProfile:
    name: str
    tier: str  # "main" | "fast"
    supports_thinking: bool


MODEL_CATALOG: Dict[str, ModelProfile] = {
    p.name: p
    for p in (
        ModelProfile("gpt-5", "main", True),
        ModelProfile("gpt-5-mini", "fast", True),
        ModelProfile("gpt-5-nano", "fast", True),
        ModelProfile("o3", "main", True),
        ModelProfile("o4-mini", "fast", True),
        ModelProfile("gpt-4.1", "main", False),
        ModelProfile("gpt-4o", "main", False),
        ModelProfile("gpt-4o-mini", "fast", False),
    )
}


def get_model_profile(model: str) -> ModelProfile:
    if model in MODEL_CATALOG:
        return MODEL_CATALOG[model]
    # unknown names: guess from the family prefix
    name = model.lower()
    thinking = name.startswith(("gpt-5", "o1", "o3", "o4"))
    tier = "fast" if ("mini" in name or "nano" in name) else "main"
    return ModelProfile(model, tier, thinking)


def resolve_thinking_budget(model: str, effort: Optional[str]) -> Optional[int]:
    """Token budget for an effort level, or None when the model takes no thinking config."""
    if not effort:
        return None
    profile = get_model_profile(model)
    if not profile.supports_thinking:
        return None
    if effort == "minimal" and profile.tier == "main":
        effort = "low"
    return THINKING_BUDGETS[effort]


def _effort_for_budget(budget: int) -> str:
    # closest named level at or below the budget
    for name in ("high", "medium", "low", "minimal"):
        if budget >= THINKING_BUDGETS[name]:
            return name
    return "minimal"


@dataclass
class GenerationConfig:
    response_schema: Optional[Dict[str, Any]] = None
    thinking_budget: Optional[int] = None
    schema_name: str = "response"


# -----------------------------------------------------------------------------
# Cancellation
# -----------------------------------------------------------------------------
class CancellationToken:
    """
    Shared abort flag for one brief / article run.

    Anything with a close() method (an open stream) can be registered while it
    is in flight; cancel() closes all of them.
    """

    def __init__(self):
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._handles: List[Any] = []

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()
        with self._lock:
            handles, self._handles = self._handles, []
        for h in handles:
            try:
                h.close()
            except Exception as e:  # a dead connection may refuse to close twice
                logger.debug("Closing cancelled handle failed: %s", e)

    def raise_if_cancelled(self, operation: str = "generation") -> None:
        if self._event.is_set():
            raise GenerationCancelled(operation)

    def wait(self, seconds: float) -> bool:
        return self._event.wait(seconds)

    @contextmanager
    def register(self, handle: Any):
        with self._lock:
            self._handles.append(handle)
        try:
            yield handle
        finally:
            with self._lock:
                if handle in self._handles:
                    self._handles.remove(handle)


# -----------------------------------------------------------------------------
# Retry
# -----------------------------------------------------------------------------
def _retry_anything(exc: BaseException) -> bool:
    return not isinstance(exc, GenerationCancelled)


@dataclass
class RetryPolicy:
    max_attempts: int = RETRY_ATTEMPTS
    delay_seconds: float = RETRY_DELAY_SECONDS
    retryable: Callable[[BaseException], bool] = _retry_anything
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    def run(self, operation: Callable[[], T], *, label: str = "generation",
            cancel_token: Optional[CancellationToken] = None) -> T:
        last: Optional[BaseException] = None
        for attempt in range(1, self.max_attempts + 1):
            if cancel_token is not None:
                cancel_token.raise_if_cancelled(label)
            try:
                return operation()
            except GenerationCancelled:
                raise
            except Exception as e:
                last = e
                if not self.retryable(e):
                    raise GenerationError(label, attempt, e) from e
                if attempt < self.max_attempts:
                    logger.warning(
                        "%s attempt %d/%d failed: %s. Retrying in %.1fs",
                        label, attempt, self.max_attempts, e, self.delay_seconds,
                    )
                    self.sleep(self.delay_seconds)
                else:
                    logger.error("%s failed after %d attempts: %s", label, attempt, e)
        raise GenerationError(label, self.max_attempts, last) from last


DEFAULT_RETRY = RetryPolicy()
RESOURCE_RETRY = RetryPolicy(max_attempts=2, delay_seconds=1.0)


# -----------------------------------------------------------------------------
# Backends
# -----------------------------------------------------------------------------
class GenerationBackend(Protocol):
    def generate(self, model: str, system_prompt: str, user_prompt: str, config: GenerationConfig,
                 cancel_token: Optional[CancellationToken] = None) -> str: ...

    def stream(self, model: str, system_prompt: str, user_prompt: str, config: GenerationConfig,
               cancel_token: Optional[CancellationToken] = None) -> Iterator[str]: ...


class OpenAIBackend:
    """Chat Completions backend. Schemas go through response_format, budgets through reasoning_effort."""

    def __init__(self, api_key: Optional[str] = None, temperature: float = 0.3):
        self._api_key = api_key
        self.temperature = temperature
        self._client: Optional[OpenAI] = None

    def _get_client(self) -> OpenAI:
        if self._client is None:
            api_key = self._api_key or os.getenv("OPENAI_API_KEY")
            if not api_key:
                raise RuntimeError("OPENAI_API_KEY is not set in your environment (.env).")
            self._client = OpenAI(api_key=api_key)
        return self._client

    def _request_kwargs(self, model: str, system_prompt: str, user_prompt: str,
                        config: GenerationConfig) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {
            "model": model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user",   "content": user_prompt},
            ],
        }
        if config.response_schema is not None:
            kwargs["response_format"] = {
                "type": "json_schema",
                "json_schema": {
                    "name": config.schema_name,
                    "schema": config.response_schema,
                    "strict": False,
                },
            }
        if config.thinking_budget is not None:
            # reasoning models reject temperature
            kwargs["reasoning_effort"] = _effort_for_budget(config.thinking_budget)
        else:
            kwargs["temperature"] = self.temperature
        return kwargs

    def generate(self, model, system_prompt, user_prompt, config, cancel_token=None) -> str:
        client = self._get_client()
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        try:
            resp = client.chat.completions.create(**self._request_kwargs(model, system_prompt, user_prompt, config))
        except (APIConnectionError, RateLimitError, APIError) as e:
            raise BackendError(f"OpenAI API error: {e}") from e
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

        content = resp.choices[0].message.content if resp.choices and resp.choices[0].message else ""
        return (content or "").strip()

    def stream(self, model, system_prompt, user_prompt, config, cancel_token=None) -> Iterator[str]:
        client = self._get_client()
        try:
            response = client.chat.completions.create(
                stream=True, **self._request_kwargs(model, system_prompt, user_prompt, config)
            )
        except (APIConnectionError, RateLimitError, APIError) as e:
            raise BackendError(f"OpenAI API error: {e}") from e

        guard = cancel_token.register(response) if cancel_token is not None else nullcontext()
        with guard:
            try:
                for event in response:
                    if cancel_token is not None:
                        cancel_token.raise_if_cancelled("stream")
                    if not event.choices:
                        continue
                    delta = event.choices[0].delta.content
                    if delta:
                        yield delta
            except GenerationCancelled:
                raise
            except (APIConnectionError, RateLimitError, APIError) as e:
                raise BackendError(f"OpenAI stream error: {e}") from e
            except Exception as e:
                # a cancelled stream dies with whatever the transport raises on close
                if cancel_token is not None and cancel_token.cancelled:
                    raise GenerationCancelled("stream") from e
                raise
            finally:
                response.close()


# -----------------------------------------------------------------------------
# Client
# -----------------------------------------------------------------------------
def parse_json_text(text: str) -> Any:
    """Parse model output as JSON, tolerating a stray code fence."""
    cleaned = (text or "").strip()
    if cleaned.startswith("```"):
        cleaned = cleaned.replace("```json", "").replace("```", "").strip()
    if not cleaned:
        raise SchemaValidationError("Response was empty.")
    try:
        return json.loads(cleaned)
    except ValueError as e:
        raise SchemaValidationError(f"Response is not valid JSON: {e}") from e


class SchemaGenerationClient:
    """
    Front door for every model call in the pipeline.

    Retries the whole call (including parsing and validation of the result)
    under one RetryPolicy, turns thinking effort into a per-model budget, and
    refuses to send a prompt over the hard token limit.
    """

    def __init__(self, backend: Optional[GenerationBackend] = None, retry_policy: Optional[RetryPolicy] = None,
                 warn_at: int = TOKEN_WARN_AT, hard_limit: int = TOKEN_HARD_LIMIT):
        self.backend = backend or OpenAIBackend()
        self.retry_policy = retry_policy or DEFAULT_RETRY
        self.warn_at = warn_at
        self.hard_limit = hard_limit

    def _check_size(self, operation: str, prompt: str) -> None:
        if check_budget(operation, prompt, self.warn_at, self.hard_limit):
            raise PromptTooLargeError(operation, estimate_tokens(prompt), self.hard_limit)

    def _config(self, model: str, schema, thinking_effort, schema_name: str) -> GenerationConfig:
        return GenerationConfig(
            response_schema=schema,
            thinking_budget=resolve_thinking_budget(model, thinking_effort),
            schema_name=schema_name,
        )

    def generate(
        self,
        model: str,
        system_prompt: str,
        user_prompt: str,
        schema: Optional[Dict[str, Any]] = None,
        thinking_effort: Optional[str] = None,
        *,
        operation: str = "generation",
        retry_policy: Optional[RetryPolicy] = None,
        cancel_token: Optional[CancellationToken] = None,
        schema_name: str = "response",
    ) -> str:
        config = self._config(model, schema, thinking_effort, schema_name)
        self._check_size(operation, system_prompt + user_prompt)

        def attempt() -> str:
            text = self.backend.generate(model, system_prompt, user_prompt, config, cancel_token=cancel_token)
            if not text or not text.strip():
                raise EmptyResponseError(operation)
            if schema is not None:
                parse_json_text(text)
            return text

        policy = retry_policy or self.retry_policy
        return policy.run(attempt, label=operation, cancel_token=cancel_token)

    def generate_json(
        self,
        model: str,
        system_prompt: str,
        user_prompt: str,
        schema: Dict[str, Any],
        thinking_effort: Optional[str] = None,
        *,
        operation: str = "generation",
        validate: Optional[Callable[[Any], T]] = None,
        retry_policy: Optional[RetryPolicy] = None,
        cancel_token: Optional[CancellationToken] = None,
        schema_name: str = "response",
    ) -> Any:
        """
        Structured call returning parsed JSON.

        `validate` runs inside each attempt; whatever it raises counts as a
        failed attempt, and whatever it returns is the result.
        """
        config = self._config(model, schema, thinking_effort, schema_name)
        self._check_size(operation, system_prompt + user_prompt)

        def attempt():
            text = self.backend.generate(model, system_prompt, user_prompt, config, cancel_token=cancel_token)
            if not text or not text.strip():
                raise EmptyResponseError(operation)
            data = parse_json_text(text)
            return validate(data) if validate is not None else data

        policy = retry_policy or self.retry_policy
        return policy.run(attempt, label=operation, cancel_token=cancel_token)

    def stream(
        self,
        model: str,
        system_prompt: str,
        user_prompt: str,
        thinking_effort: Optional[str] = None,
        *,
        operation: str = "stream",
        cancel_token: Optional[CancellationToken] = None,
    ) -> Iterator[str]:
        """Yield text chunks as they arrive. Not retried; the caller decides what a failure means."""
        config = self._config(model, None, thinking_effort, "response")
        self._check_size(operation, system_prompt + user_prompt)
        if cancel_token is not None:
            cancel_token.raise_if_cancelled(operation)

        chunks = self.backend.stream(model, system_prompt, user_prompt, config, cancel_token=cancel_token)
        got_text = False
        try:
            for chunk in chunks:
                if cancel_token is not None:
                    cancel_token.raise_if_cancelled(operation)
                if chunk:
                    got_text = True
                    yield chunk
        finally:
            close = getattr(chunks, "close", None)
            if close is not None:
                close()
        if not got_text:
            raise EmptyResponseError(operation)
