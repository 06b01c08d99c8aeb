"""LLM client: HTTP connection to a text-generation backend.

The dialogue engine depends only on the TextGenerator protocol:

    async def complete(messages, *, temperature=None, max_tokens=None) -> str
    def stream(messages, *, temperature=None, max_tokens=None) -> AsyncIterator[str]

`messages` is a chat transcript: a list of {"role": ..., "content": ...}
dicts with roles "system", "user" and "assistant". Calls are stateless, so
a caller that no longer wants a result simply ignores it.

Two implementations are provided:

    HttpLLM: real HTTP client, supports OpenAI-compatible chat
             completions and KoboldCpp. Selected by provider_format.
    EchoLLM: echoes the last user message back. Useful for smoke-testing
             the lesson flow without a running model.

Production code builds one with build_llm(settings) and injects it into
the DialogueEngine. Tests use StubLLM (defined in conftest.py) instead.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from typing import Literal, Protocol

import httpx

from sci_learner.config import LLMSettings

logger = logging.getLogger(__name__)

ChatMessage = dict[str, str]


# ---------------------------------------------------------------------------
# Protocol: every LLM implementation must match these signatures
# ---------------------------------------------------------------------------

class TextGenerator(Protocol):
    async def complete(
        self,
        messages: list[ChatMessage],
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str: ...

    def stream(
        self,
        messages: list[ChatMessage],
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> AsyncIterator[str]: ...


# ---------------------------------------------------------------------------
# HttpLLM: connects to a real backend
# ---------------------------------------------------------------------------

ProviderFormat = Literal["openai", "koboldcpp"]


class HttpLLM:
    """Async HTTP client for chat-completion backends.

    Supported formats:
      "openai"    : POST /v1/chat/completions  {"model", "messages", ...}
                     Response: {"choices": [{"message": {"content": "..."}}]}
                     Stream:   SSE "data: {choices: [{delta: {content}}]}" … "data: [DONE]"
      "koboldcpp" : POST /api/v1/generate  {"prompt": ...}
                     Response: {"results": [{"text": "..."}]}
                     Stream:   POST /api/extra/generate/stream, SSE "data: {token}"

    KoboldCpp is a plain text-completion API, so the chat transcript is
    flattened into a single prompt.

    Args:
        provider_url:    Base URL of the backend, e.g. "https://api.openai.com".
        api_key:         Bearer token, or empty string if not required.
        provider_format: Wire format to use. Defaults to "openai".
        model:           Model identifier, used only by the openai format.
        temperature:     Default sampling temperature.
        max_tokens:      Default completion length.
        timeout:         HTTP timeout in seconds. Defaults to 60.
        transport:       Optional httpx transport (tests pass MockTransport).
    """

    def __init__(
        self,
        provider_url: str,
        api_key: str = "",
        provider_format: ProviderFormat = "openai",
        model: str = "",
        temperature: float = 0.7,
        max_tokens: int = 500,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = provider_url.rstrip("/")
        self._api_key = api_key
        self._format = provider_format
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def _build_request(
        self,
        messages: list[ChatMessage],
        temperature: float | None,
        max_tokens: int | None,
        stream: bool,
    ) -> tuple[str, dict]:
        """Return (url, body) for the configured format."""
        temperature = self._temperature if temperature is None else temperature
        max_tokens = self._max_tokens if max_tokens is None else max_tokens

        if self._format == "koboldcpp":
            path = "/api/extra/generate/stream" if stream else "/api/v1/generate"
            body = {
                "prompt": flatten_messages(messages),
                "max_length": max_tokens,
                "temperature": temperature,
            }
            return f"{self._base_url}{path}", body

        # openai (default)
        body = {
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "stream": stream,
        }
        if self._model:
            body["model"] = self._model
        return f"{self._base_url}/v1/chat/completions", body

    def _parse_response(self, data: dict) -> str:
        """Extract the completion text from a non-streaming response body."""
        if self._format == "koboldcpp":
            results = data.get("results")
            if not results or "text" not in results[0]:
                raise LLMError("Unexpected response format from KoboldCpp backend")
            return results[0]["text"]

        choices = data.get("choices")
        if not choices or "content" not in choices[0].get("message", {}):
            raise LLMError("Unexpected response format from OpenAI-compatible backend")
        return choices[0]["message"]["content"] or ""

    def _parse_event(self, data: str) -> str | None:
        """Extract one text chunk from an SSE data payload, or None to skip."""
        try:
            event = json.loads(data)
        except json.JSONDecodeError:
            logger.debug("skipping malformed stream chunk %r", data[:80])
            return None
        if not isinstance(event, dict):
            return None
        if self._format == "koboldcpp":
            return event.get("token") or None
        choices = event.get("choices") or [{}]
        return (choices[0].get("delta") or {}).get("content") or None

    async def complete(
        self,
        messages: list[ChatMessage],
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        url, body = self._build_request(messages, temperature, max_tokens, stream=False)
        logger.debug("llm complete url=%s messages=%d", url, len(messages))

        try:
            async with self._client() as client:
                resp = await client.post(url, json=body, headers=self._headers())
                resp.raise_for_status()
        except httpx.ConnectError as e:
            raise LLMError(f"Cannot connect to LLM backend at {self._base_url}") from e
        except httpx.HTTPStatusError as e:
            raise LLMError(
                f"LLM backend returned HTTP {e.response.status_code}"
            ) from e
        except httpx.TimeoutException as e:
            raise LLMError(f"LLM backend timed out after {self._timeout}s") from e
        except httpx.HTTPError as e:
            raise LLMError(f"LLM request failed: {e!r}") from e

        try:
            text = self._parse_response(resp.json())
        except (ValueError, AttributeError, TypeError) as e:
            raise LLMError("LLM backend returned a malformed response body") from e
        logger.debug("llm response len=%d", len(text))
        return text

    async def stream(
        self,
        messages: list[ChatMessage],
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> AsyncIterator[str]:
        url, body = self._build_request(messages, temperature, max_tokens, stream=True)
        logger.debug("llm stream url=%s messages=%d", url, len(messages))

        try:
            async with self._client() as client:
                async with client.stream("POST", url, json=body, headers=self._headers()) as resp:
                    resp.raise_for_status()
                    async for line in resp.aiter_lines():
                        if not line.startswith("data:"):
                            continue
                        data = line[len("data:"):].strip()
                        if data == "[DONE]":
                            break
                        chunk = self._parse_event(data)
                        if chunk:
                            yield chunk
        except httpx.ConnectError as e:
            raise LLMError(f"Cannot connect to LLM backend at {self._base_url}") from e
        except httpx.HTTPStatusError as e:
            raise LLMError(
                f"LLM backend returned HTTP {e.response.status_code}"
            ) from e
        except httpx.TimeoutException as e:
            raise LLMError(f"LLM backend timed out after {self._timeout}s") from e
        except httpx.HTTPError as e:
            raise LLMError(f"LLM stream failed: {e!r}") from e


def flatten_messages(messages: list[ChatMessage]) -> str:
    """Render a chat transcript as a plain text-completion prompt."""
    lines: list[str] = []
    for m in messages:
        if m["role"] == "system":
            lines.append(m["content"])
        elif m["role"] == "user":
            lines.append(f"Student: {m['content']}")
        else:
            lines.append(f"Tutor: {m['content']}")
        lines.append("")
    lines.append("Tutor:")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# EchoLLM: echoes the student; useful for lesson-flow smoke tests
# ---------------------------------------------------------------------------

class EchoLLM:
    """Returns the last user message as-is. No network calls.

    Lets you click through a lesson end to end (routing, pacing, storage
    writes) without a running model. Echoed answers carry no correctness
    marker, so graded steps advance only through the attempt cap.
    """

    async def complete(
        self,
        messages: list[ChatMessage],
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        text = _last_user_message(messages)
        logger.debug("EchoLLM complete len=%d", len(text))
        return text

    async def stream(
        self,
        messages: list[ChatMessage],
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> AsyncIterator[str]:
        words = _last_user_message(messages).split(" ")
        for i, word in enumerate(words):
            yield word if i == 0 else f" {word}"


def _last_user_message(messages: list[ChatMessage]) -> str:
    for m in reversed(messages):
        if m["role"] == "user":
            return m["content"]
    return ""


def build_llm(settings: LLMSettings) -> TextGenerator:
    """Build the client described by LLMSettings; EchoLLM when no URL is set."""
    if not settings.provider_url:
        logger.warning("no LLM provider configured, using EchoLLM")
        return EchoLLM()
    return HttpLLM(
        provider_url=settings.provider_url,
        api_key=settings.api_key,
        provider_format=settings.provider_format,
        model=settings.model,
        temperature=settings.temperature,
        max_tokens=settings.max_tokens,
        timeout=settings.timeout,
    )


# ---------------------------------------------------------------------------
# LLMError: raised by HttpLLM for all connection and protocol failures
# ---------------------------------------------------------------------------

class LLMError(RuntimeError):
    """Raised when the LLM backend cannot be reached or returns an error."""
