"""Claude API wrapper with async support and optional retry logic."""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass

import anthropic
from tenacity import AsyncRetrying, stop_after_attempt, wait_exponential

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-haiku-4-5-20251001"


@dataclass
class LLMResponse:
    """Response from the LLM including usage metadata."""

    text: str
    input_tokens: int
    output_tokens: int


def file_content_block(file_bytes: bytes, media_type: str) -> dict:
    """Build the message content block carrying an uploaded file.

    Images go in an ``image`` block; every other media type is sent as a
    base64 ``document`` block and left for the API to accept or reject.
    """
    source = {
        "type": "base64",
        "media_type": media_type,
        "data": base64.b64encode(file_bytes).decode("utf-8"),
    }
    block_type = "image" if media_type.startswith("image/") else "document"
    return {"type": block_type, "source": source}


class LLMClient:
    """Async Claude API client.

    ``max_attempts`` defaults to 1: a failed call is surfaced immediately so
    the pipeline can switch to its fallback report instead of waiting.
    """

    def __init__(
        self,
        api_key: str | None = None,
        timeout: float | None = None,
        max_attempts: int = 1,
    ):
        kwargs: dict = {}
        if api_key is not None:
            kwargs["api_key"] = api_key
        if timeout is not None:
            kwargs["timeout"] = timeout
        self.client = anthropic.AsyncAnthropic(**kwargs)
        self.max_attempts = max_attempts
        self._token_log: list[tuple[str, int, int]] = []  # (model, input_tokens, output_tokens)

    async def _call_api(self, **kwargs) -> anthropic.types.Message:
        """Make the actual API call, retrying up to ``max_attempts`` times."""
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(min=1, max=10),
            reraise=True,
        ):
            with attempt:
                return await self.client.messages.create(**kwargs)
        raise RuntimeError("unreachable")  # pragma: no cover

    async def _send(
        self,
        content: str | list[dict],
        system: str,
        model: str,
        temperature: float,
        max_tokens: int,
    ) -> LLMResponse:
        logger.debug("LLM call: model=%s", model)
        kwargs: dict = {
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": content}],
        }
        if system:
            kwargs["system"] = system
        try:
            message = await self._call_api(**kwargs)
        except Exception:
            logger.error("LLM call failed", exc_info=True)
            raise
        input_tokens = message.usage.input_tokens
        output_tokens = message.usage.output_tokens
        logger.debug("LLM response: %d input, %d output tokens", input_tokens, output_tokens)
        self._token_log.append((model, input_tokens, output_tokens))
        return LLMResponse(
            text=message.content[0].text,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        )

    async def generate(
        self,
        prompt: str,
        system: str = "",
        model: str = DEFAULT_MODEL,
        temperature: float = 0.0,
        max_tokens: int = 4096,
    ) -> LLMResponse:
        """Send a text-only prompt to Claude and return the text response with usage."""
        return await self._send(prompt, system, model, temperature, max_tokens)

    async def generate_with_file(
        self,
        prompt: str,
        file_bytes: bytes,
        media_type: str,
        system: str = "",
        model: str = DEFAULT_MODEL,
        temperature: float = 0.0,
        max_tokens: int = 4096,
    ) -> LLMResponse:
        """Send a prompt together with a file (PDF, image, ...) to Claude.

        Args:
            prompt: Instruction text sent after the file.
            file_bytes: Raw file bytes.
            media_type: MIME type (e.g. "application/pdf", "image/png").
        """
        content = [
            file_content_block(file_bytes, media_type),
            {"type": "text", "text": prompt},
        ]
        return await self._send(content, system, model, temperature, max_tokens)

    def get_token_summary(self) -> dict:
        """Return accumulated token usage and reset the log."""
        summary = {
            "input": sum(t[1] for t in self._token_log),
            "output": sum(t[2] for t in self._token_log),
            "calls": list(self._token_log),
        }
        self._token_log.clear()
        return summary
