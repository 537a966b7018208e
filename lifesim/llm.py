"""LLM client: HTTP connection to a text-generation backend.

Event generation and custom-choice judging inject an LLM callable matching:

    async def __call__(self, stage: str, prompt: str) -> str: ...

`stage` is "event" or "judge". HttpLLM uses it to pick sampling settings;
test doubles use it to route canned responses.

Production code constructs an HttpLLM from Settings (see lifesim.config).
Tests use StubLLM from tests/helpers.py instead.
"""

from __future__ import annotations

import logging
from typing import Any, Literal, Protocol

import httpx

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocol: every LLM implementation must match this signature
# ---------------------------------------------------------------------------

class LLM(Protocol):
    async def __call__(self, stage: str, prompt: str) -> str: ...


# ---------------------------------------------------------------------------
# HttpLLM: connects to a real backend
# ---------------------------------------------------------------------------

ProviderFormat = Literal["gemini", "openai"]

# Sampling per stage: events want variety, verdicts want consistency.
_SAMPLING: dict[str, dict[str, float]] = {
    "event": {"temperature": 0.9, "max_tokens": 1024},
    "judge": {"temperature": 0.7, "max_tokens": 512},
}


class HttpLLM:
    """Async HTTP client for text-generation backends.

    Supported formats:
      "gemini": POST {base}/v1beta/models/{model}:generateContent?key=...
                  Response: {"candidates": [{"content": {"parts": [{"text": ...}]}}]}
      "openai": POST {base}/v1/completions  {"model": ..., "prompt": ...}
                  Response: {"choices": [{"text": "..."}]}

    Args:
        provider_url:    Base URL, e.g. "https://generativelanguage.googleapis.com".
        api_key:         Query key (gemini) or bearer token (openai).
        provider_format: Wire format to use. Defaults to "gemini".
        model:           Model identifier.
        timeout:         HTTP timeout in seconds. Defaults to 10.
    """

    def __init__(
        self,
        provider_url: str,
        api_key: str = "",
        provider_format: ProviderFormat = "gemini",
        model: str = "gemini-1.5-flash",
        timeout: float = 10.0,
    ) -> None:
        self._base_url = provider_url.rstrip("/")
        self._api_key = api_key
        self._format = provider_format
        self._model = model
        self._timeout = timeout

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._api_key and self._format == "openai":
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def _build_request(self, stage: str, prompt: str) -> tuple[str, dict, dict]:
        """Return (url, params, body) for the configured format."""
        sampling = _SAMPLING.get(stage, _SAMPLING["event"])
        if self._format == "openai":
            url = f"{self._base_url}/v1/completions"
            body: dict = {
                "prompt": prompt,
                "temperature": sampling["temperature"],
                "max_tokens": int(sampling["max_tokens"]),
            }
            if self._model:
                body["model"] = self._model
            return url, {}, body

        # gemini (default)
        url = f"{self._base_url}/v1beta/models/{self._model}:generateContent"
        params = {"key": self._api_key} if self._api_key else {}
        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": sampling["temperature"],
                "maxOutputTokens": int(sampling["max_tokens"]),
            },
        }
        return url, params, body

    def _parse_response(self, data: Any) -> str:
        """Extract the completion text from the response body. Anything but a string is an error."""
        if self._format == "openai":
            choices = data.get("choices") if isinstance(data, dict) else None
            first = choices[0] if isinstance(choices, list) and choices else None
            text = first.get("text") if isinstance(first, dict) else None
            if not isinstance(text, str):
                raise LLMError("Unexpected response format from OpenAI-compatible backend")
            return text

        # gemini
        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            raise LLMError("Unexpected response format from Gemini backend") from e
        if not isinstance(text, str):
            raise LLMError("Gemini backend returned non-text content")
        return text

    async def __call__(self, stage: str, prompt: str) -> str:
        url, params, body = self._build_request(stage, prompt)
        logger.debug("llm call stage=%s url=%s prompt_len=%d", stage, url, len(prompt))

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(url, params=params, json=body, headers=self._headers())
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
            raise LLMError(f"LLM request failed: {e}") from e

        try:
            data = resp.json()
        except ValueError as e:
            raise LLMError("LLM backend returned a non-JSON body") from e
        text = self._parse_response(data)
        logger.debug("llm response stage=%s len=%d", stage, len(text))
        return text


# ---------------------------------------------------------------------------
# LLMError: raised by HttpLLM for all connection and protocol failures
# ---------------------------------------------------------------------------

class LLMError(RuntimeError):
    """Raised when the LLM backend cannot be reached or returns an error."""
