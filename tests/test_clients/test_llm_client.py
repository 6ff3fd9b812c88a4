"""Tests for LLMClient (Claude API wrapper)."""

from __future__ import annotations

import base64
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from tenacity import wait_none

from cv_gap_analyzer.clients.llm_client import LLMClient, LLMResponse, file_content_block


def _make_api_message(text: str, input_tokens: int = 100, output_tokens: int = 50) -> MagicMock:
    """Build a mock anthropic Message-like object."""
    message = MagicMock()
    message.usage.input_tokens = input_tokens
    message.usage.output_tokens = output_tokens
    message.content = [MagicMock(text=text)]
    return message


class TestLLMClientInit:
    def test_init_default_creates_client_with_no_kwargs(self):
        """Creates AsyncAnthropic with no extra kwargs when no args supplied."""
        with patch("cv_gap_analyzer.clients.llm_client.anthropic.AsyncAnthropic") as mock_cls:
            LLMClient()
            mock_cls.assert_called_once_with()

    def test_init_with_both_params_passes_both(self):
        """Passes both api_key and timeout when both are supplied."""
        with patch("cv_gap_analyzer.clients.llm_client.anthropic.AsyncAnthropic") as mock_cls:
            LLMClient(api_key="test-key", timeout=30.0)
            mock_cls.assert_called_once_with(api_key="test-key", timeout=30.0)

    def test_single_attempt_by_default(self):
        with patch("cv_gap_analyzer.clients.llm_client.anthropic.AsyncAnthropic"):
            assert LLMClient().max_attempts == 1


class TestLLMClientGenerate:
    async def test_generate_returns_llm_response(self):
        """generate() wraps API response fields into an LLMResponse dataclass."""
        with patch("cv_gap_analyzer.clients.llm_client.anthropic.AsyncAnthropic") as mock_cls:
            mock_client = MagicMock()
            mock_client.messages.create = AsyncMock(
                return_value=_make_api_message("hello world", input_tokens=100, output_tokens=50)
            )
            mock_cls.return_value = mock_client

            llm = LLMClient()
            result = await llm.generate("say hello", temperature=0.5, max_tokens=3000)

        assert isinstance(result, LLMResponse)
        assert result.text == "hello world"
        assert result.input_tokens == 100
        kwargs = mock_client.messages.create.call_args.kwargs
        assert kwargs["messages"] == [{"role": "user", "content": "say hello"}]
        assert kwargs["temperature"] == 0.5
        assert kwargs["max_tokens"] == 3000
        assert "system" not in kwargs

    async def test_token_log_stores_model_and_counts(self):
        """_token_log entries are (model, input_tokens, output_tokens) tuples."""
        with patch("cv_gap_analyzer.clients.llm_client.anthropic.AsyncAnthropic") as mock_cls:
            mock_client = MagicMock()
            mock_client.messages.create = AsyncMock(
                return_value=_make_api_message("resp", input_tokens=20, output_tokens=8)
            )
            mock_cls.return_value = mock_client

            llm = LLMClient()
            await llm.generate("prompt", model="claude-haiku-4-5-20251001")

        assert llm._token_log == [("claude-haiku-4-5-20251001", 20, 8)]

    async def test_error_not_retried_with_single_attempt(self):
        with patch("cv_gap_analyzer.clients.llm_client.anthropic.AsyncAnthropic") as mock_cls:
            mock_client = MagicMock()
            mock_client.messages.create = AsyncMock(side_effect=RuntimeError("overloaded"))
            mock_cls.return_value = mock_client

            llm = LLMClient()
            with pytest.raises(RuntimeError, match="overloaded"):
                await llm.generate("prompt")

        assert mock_client.messages.create.await_count == 1
        assert llm._token_log == []

    async def test_retries_up_to_max_attempts(self):
        with patch("cv_gap_analyzer.clients.llm_client.anthropic.AsyncAnthropic") as mock_cls, \
                patch("cv_gap_analyzer.clients.llm_client.wait_exponential", return_value=wait_none()):
            mock_client = MagicMock()
            mock_client.messages.create = AsyncMock(
                side_effect=[RuntimeError("overloaded"), _make_api_message("ok")]
            )
            mock_cls.return_value = mock_client

            llm = LLMClient(max_attempts=2)
            result = await llm.generate("prompt")

        assert result.text == "ok"
        assert mock_client.messages.create.await_count == 2


class TestLLMClientGenerateWithFile:
    async def test_pdf_sent_as_document_before_prompt(self):
        with patch("cv_gap_analyzer.clients.llm_client.anthropic.AsyncAnthropic") as mock_cls:
            mock_client = MagicMock()
            mock_client.messages.create = AsyncMock(return_value=_make_api_message("cv text"))
            mock_cls.return_value = mock_client

            llm = LLMClient()
            result = await llm.generate_with_file("extract", b"%PDF", "application/pdf")

        assert result.text == "cv text"
        content = mock_client.messages.create.call_args.kwargs["messages"][0]["content"]
        assert content[0]["type"] == "document"
        assert content[0]["source"]["media_type"] == "application/pdf"
        assert content[1] == {"type": "text", "text": "extract"}

    def test_image_block(self):
        block = file_content_block(b"png-bytes", "image/png")
        assert block["type"] == "image"
        assert block["source"]["type"] == "base64"
        assert base64.b64decode(block["source"]["data"]) == b"png-bytes"


class TestLLMClientTokenSummary:
    def test_get_token_summary_returns_totals_and_clears(self):
        """get_token_summary() sums tokens across entries, then empties the log."""
        with patch("cv_gap_analyzer.clients.llm_client.anthropic.AsyncAnthropic"):
            llm = LLMClient()
            llm._token_log = [
                ("claude-haiku-4-5-20251001", 100, 50),
                ("claude-haiku-4-5-20251001", 200, 80),
            ]

        summary = llm.get_token_summary()

        assert summary["input"] == 300
        assert summary["output"] == 130
        assert len(summary["calls"]) == 2
        assert llm.get_token_summary()["calls"] == []
