"""Tests for lifesim.llm: HttpLLM in gemini and openai formats."""

import pytest
import httpx
from unittest.mock import AsyncMock, MagicMock, patch

from lifesim.llm import HttpLLM, LLMError


def _mock_response(body: dict, status: int = 200) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = body
    resp.raise_for_status = MagicMock(
        side_effect=None if status < 400 else httpx.HTTPStatusError(
            "", request=MagicMock(), response=resp
        )
    )
    return resp


def _gemini_body(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


# ---------------------------------------------------------------------------
# Gemini format
# ---------------------------------------------------------------------------

class TestHttpLLMGemini:
    @pytest.fixture
    def llm(self) -> HttpLLM:
        return HttpLLM(provider_url="https://generativelanguage.googleapis.com/", api_key="secret")

    async def test_happy_path(self, llm: HttpLLM) -> None:
        mock_post = AsyncMock(return_value=_mock_response(_gemini_body('{"situation": "x"}')))
        with patch("httpx.AsyncClient.post", mock_post):
            result = await llm("event", "Make an event.")
        assert result == '{"situation": "x"}'

    async def test_posts_to_generate_content_with_key(self, llm: HttpLLM) -> None:
        mock_post = AsyncMock(return_value=_mock_response(_gemini_body("ok")))
        with patch("httpx.AsyncClient.post", mock_post):
            await llm("event", "prompt")
        url = mock_post.call_args[0][0]
        assert url == "https://generativelanguage.googleapis.com/v1beta/models/gemini-1.5-flash:generateContent"
        assert mock_post.call_args.kwargs["params"] == {"key": "secret"}
        assert "Authorization" not in mock_post.call_args.kwargs["headers"]

    async def test_request_body_shape_per_stage(self, llm: HttpLLM) -> None:
        mock_post = AsyncMock(return_value=_mock_response(_gemini_body("ok")))
        with patch("httpx.AsyncClient.post", mock_post):
            await llm("judge", "Is this fine?")
        body = mock_post.call_args.kwargs["json"]
        assert body["contents"][0]["parts"][0]["text"] == "Is this fine?"
        assert body["generationConfig"] == {"temperature": 0.7, "maxOutputTokens": 512}

    async def test_malformed_response_raises(self, llm: HttpLLM) -> None:
        mock_post = AsyncMock(return_value=_mock_response({"candidates": []}))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(LLMError, match="Unexpected response format"):
                await llm("event", "prompt")

    async def test_non_json_body_raises(self, llm: HttpLLM) -> None:
        resp = _mock_response({})
        resp.json.side_effect = ValueError("not json")
        with patch("httpx.AsyncClient.post", AsyncMock(return_value=resp)):
            with pytest.raises(LLMError, match="non-JSON"):
                await llm("event", "prompt")


# ---------------------------------------------------------------------------
# OpenAI-compatible format
# ---------------------------------------------------------------------------

class TestHttpLLMOpenAI:
    @pytest.fixture
    def llm(self) -> HttpLLM:
        return HttpLLM(
            provider_url="http://localhost:8080",
            api_key="sk-test",
            provider_format="openai",
            model="local-model",
        )

    async def test_happy_path(self, llm: HttpLLM) -> None:
        mock_post = AsyncMock(return_value=_mock_response({"choices": [{"text": "hello"}]}))
        with patch("httpx.AsyncClient.post", mock_post):
            assert await llm("event", "prompt") == "hello"

    async def test_url_body_and_auth(self, llm: HttpLLM) -> None:
        mock_post = AsyncMock(return_value=_mock_response({"choices": [{"text": "ok"}]}))
        with patch("httpx.AsyncClient.post", mock_post):
            await llm("event", "prompt")
        assert mock_post.call_args[0][0] == "http://localhost:8080/v1/completions"
        body = mock_post.call_args.kwargs["json"]
        assert body["model"] == "local-model"
        assert body["max_tokens"] == 1024
        assert mock_post.call_args.kwargs["headers"]["Authorization"] == "Bearer sk-test"

    async def test_malformed_response_raises(self, llm: HttpLLM) -> None:
        mock_post = AsyncMock(return_value=_mock_response({"choices": []}))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(LLMError):
                await llm("event", "prompt")


# ---------------------------------------------------------------------------
# Transport errors
# ---------------------------------------------------------------------------

class TestHttpLLMErrors:
    @pytest.fixture
    def llm(self) -> HttpLLM:
        return HttpLLM(provider_url="http://localhost:9", timeout=1.0)

    async def test_connect_error(self, llm: HttpLLM) -> None:
        mock_post = AsyncMock(side_effect=httpx.ConnectError("refused"))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(LLMError, match="Cannot connect"):
                await llm("event", "prompt")

    async def test_http_status_error(self, llm: HttpLLM) -> None:
        mock_post = AsyncMock(return_value=_mock_response({}, status=503))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(LLMError, match="HTTP 503"):
                await llm("event", "prompt")

    async def test_timeout(self, llm: HttpLLM) -> None:
        mock_post = AsyncMock(side_effect=httpx.ReadTimeout("slow"))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(LLMError, match="timed out"):
                await llm("event", "prompt")

    async def test_other_transport_error(self, llm: HttpLLM) -> None:
        mock_post = AsyncMock(side_effect=httpx.RemoteProtocolError("peer closed"))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(LLMError, match="request failed"):
                await llm("event", "prompt")


# ---------------------------------------------------------------------------
# Well-formed HTTP, wrong payload types
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("body", [
    {"choices": [{"text": None}]},
    {"choices": [{"text": 3}]},
    {"choices": ["hello"]},
    {"choices": {"text": "hello"}},
    [{"text": "hello"}],
    "hello",
])
async def test_openai_non_string_text_raises(body) -> None:
    llm = HttpLLM("http://localhost:8080", provider_format="openai")
    with patch("httpx.AsyncClient.post", AsyncMock(return_value=_mock_response(body))):
        with pytest.raises(LLMError):
            await llm("event", "prompt")


@pytest.mark.parametrize("body", [
    _gemini_body(7),
    _gemini_body(None),
    {"candidates": [{"content": {"parts": [{"text": ["a"]}]}}]},
    ["not", "an", "object"],
])
async def test_gemini_non_string_text_raises(body) -> None:
    llm = HttpLLM("https://generativelanguage.googleapis.com")
    with patch("httpx.AsyncClient.post", AsyncMock(return_value=_mock_response(body))):
        with pytest.raises(LLMError):
            await llm("judge", "prompt")
