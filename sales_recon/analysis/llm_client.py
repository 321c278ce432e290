"""Unified LLM client. Routes to Anthropic (primary) or OpenAI (fallback)."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

import anthropic
from openai import AsyncOpenAI

from sales_recon.config import Config
from sales_recon.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Maximum time (seconds) to wait for a single LLM call before giving up
DEFAULT_LLM_TIMEOUT = 120


class _AnthropicBillingError(Exception):
    """Raised when Anthropic returns a billing/credit error."""


class LLMClient:
    """Send a prompt to an LLM and return the response text.

    Tries Anthropic first. If Anthropic returns a billing/auth error
    (400/401/402), falls back to OpenAI for this call AND all later calls
    made through this instance.
    """

    def __init__(
        self,
        anthropic_api_key: str = "",
        openai_api_key: str = "",
        anthropic_model: str = "claude-sonnet-4-20250514",
        openai_model: str = "gpt-4o",
        timeout: float = DEFAULT_LLM_TIMEOUT,
        anthropic_client: Any = None,
        openai_client: Any = None,
    ):
        self.anthropic_model = anthropic_model
        self.openai_model = openai_model
        self.timeout = timeout
        self._anthropic = anthropic_client
        if self._anthropic is None and anthropic_api_key:
            self._anthropic = anthropic.AsyncAnthropic(api_key=anthropic_api_key)
        self._openai = openai_client
        if self._openai is None and openai_api_key:
            self._openai = AsyncOpenAI(api_key=openai_api_key)
        self.active_provider: str | None = None
        self._anthropic_failed = False

    @classmethod
    def from_config(cls, config: Config) -> LLMClient:
        return cls(
            anthropic_api_key=config.anthropic_api_key,
            openai_api_key=config.openai_api_key,
            anthropic_model=config.anthropic_analysis_model,
            openai_model=config.openai_analysis_model,
            timeout=config.llm_timeout,
        )

    async def complete(
        self,
        prompt: str,
        system: str | None = None,
        max_tokens: int = 4000,
        temperature: float = 0.7,
        json_mode: bool = False,
    ) -> str:
        if not self._anthropic_failed and self._anthropic is not None:
            try:
                return await asyncio.wait_for(
                    self._call_anthropic(prompt, system, max_tokens, temperature),
                    timeout=self.timeout,
                )
            except asyncio.TimeoutError:
                logger.warning("Anthropic call timed out after %ss", self.timeout)
                if self._openai is None:
                    raise RuntimeError(f"Anthropic LLM call timed out after {self.timeout}s")
                logger.info("Falling back to OpenAI for this call")
            except _AnthropicBillingError:
                logger.warning("Anthropic billing error, switching to OpenAI for all future calls")
                self._anthropic_failed = True
            except Exception as e:
                logger.error("Anthropic error: %s", e)
                if self._openai is None:
                    raise
                logger.info("Falling back to OpenAI for this call")

        if self._openai is not None:
            if self.active_provider != "openai":
                self.active_provider = "openai"
                logger.info("Using OpenAI (%s) for analysis", self.openai_model)
            return await asyncio.wait_for(
                self._call_openai(prompt, system, max_tokens, temperature, json_mode),
                timeout=self.timeout,
            )

        raise ConfigurationError(
            "No LLM provider available. Set ANTHROPIC_API_KEY or OPENAI_API_KEY."
        )

    async def _call_anthropic(
        self, prompt: str, system: str | None, max_tokens: int, temperature: float,
    ) -> str:
        kwargs: dict[str, Any] = {
            "model": self.anthropic_model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            kwargs["system"] = system
        try:
            response = await self._anthropic.messages.create(**kwargs)
        except anthropic.APIStatusError as e:
            if e.status_code in (400, 401, 402):
                msg = str(e).lower()
                if "credit" in msg or "balance" in msg or "billing" in msg:
                    raise _AnthropicBillingError(str(e)) from e
            raise
        self.active_provider = "anthropic"
        return response.content[0].text

    async def _call_openai(
        self,
        prompt: str,
        system: str | None,
        max_tokens: int,
        temperature: float,
        json_mode: bool,
    ) -> str:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        kwargs: dict[str, Any] = {
            "model": self.openai_model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": messages,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        response = await self._openai.chat.completions.create(**kwargs)
        return response.choices[0].message.content or ""


# ---------------------------------------------------------------------------
# Tool-calling chat interface
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ToolCall:
    id: str
    name: str
    arguments: str  # raw JSON text as sent by the model


@dataclass(frozen=True)
class AssistantTurn:
    content: str = ""
    tool_calls: tuple[ToolCall, ...] = field(default_factory=tuple)

    def to_message(self) -> dict[str, Any]:
        message: dict[str, Any] = {"role": "assistant", "content": self.content}
        if self.tool_calls:
            message["tool_calls"] = [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {"name": call.name, "arguments": call.arguments},
                }
                for call in self.tool_calls
            ]
        return message


class ChatModel(Protocol):
    async def chat(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        tool_choice: str,
    ) -> AssistantTurn: ...


class OpenAIChatModel:
    """Chat-completions model with function calling."""

    def __init__(
        self,
        api_key: str = "",
        model: str = "gpt-4o",
        timeout: float = DEFAULT_LLM_TIMEOUT,
        client: Any = None,
    ):
        if client is None and not api_key:
            raise ConfigurationError("OPENAI_API_KEY is required for tool-calling lookups")
        self._client = client or AsyncOpenAI(api_key=api_key)
        self.model = model
        self.timeout = timeout

    async def chat(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        tool_choice: str,
    ) -> AssistantTurn:
        response = await asyncio.wait_for(
            self._client.chat.completions.create(
                model=self.model,
                messages=messages,
                tools=tools,
                tool_choice=tool_choice,
            ),
            timeout=self.timeout,
        )
        message = response.choices[0].message
        calls = tuple(
            ToolCall(id=tc.id, name=tc.function.name, arguments=tc.function.arguments or "")
            for tc in (message.tool_calls or [])
        )
        return AssistantTurn(content=message.content or "", tool_calls=calls)
