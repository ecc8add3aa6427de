"""
LLM client for the agent's judgment calls.

Uses Claude for triage, principle review, content safety and composition.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional
import asyncio
import logging

import aiohttp

from ..exceptions import SparkloopError

logger = logging.getLogger(__name__)


@dataclass
class LLMResponse:
    """Response from LLM."""
    content: str
    model: str
    usage: dict
    raw_response: Optional[dict] = None


class LLMClient(ABC):
    """Abstract base class for LLM clients."""

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        system: Optional[str] = None,
        max_tokens: int = 1024,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """Generate a response from the LLM."""
        pass

    async def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        temperature: float = 0.3,
    ) -> str:
        """Raw completion text. Callers decode and validate it themselves."""
        response = await self.generate(prompt=prompt, system=system, temperature=temperature)
        return response.content

    async def close(self):
        pass


class ClaudeClient(LLMClient):
    """
    Client for Anthropic's Claude API.

    Used for:
    - Scout reports on incoming stimuli
    - Principle and guardrail reviews
    - Composing replies and posts
    """

    API_URL = "https://api.anthropic.com/v1/messages"

    def __init__(
        self,
        api_key: str,
        model: str = "claude-sonnet-4-20250514",
        max_tokens: int = 1024,
        max_retries: int = 3,
    ):
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens
        self.max_retries = max_retries
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        await self._ensure_session()
        return self

    async def __aexit__(self, *args):
        await self.close()

    async def _ensure_session(self):
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={
                    "x-api-key": self.api_key,
                    "anthropic-version": "2023-06-01",
                    "content-type": "application/json",
                }
            )

    async def close(self):
        if self._session and not self._session.closed:
            await self._session.close()

    async def generate(
        self,
        prompt: str,
        system: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """Generate a response from Claude."""
        await self._ensure_session()

        payload = {
            "model": self.model,
            "max_tokens": max_tokens or self.max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }

        if system:
            payload["system"] = system

        for attempt in range(self.max_retries):
            try:
                async with self._session.post(self.API_URL, json=payload) as response:
                    if response.status in (429, 529):
                        # Rate limited or overloaded
                        await asyncio.sleep(2 ** attempt)
                        continue

                    response.raise_for_status()
                    data = await response.json()

                    text = "".join(
                        block.get("text", "")
                        for block in data.get("content", [])
                        if block.get("type") == "text"
                    )
                    return LLMResponse(
                        content=text,
                        model=data.get("model", self.model),
                        usage=data.get("usage", {}),
                        raw_response=data,
                    )

            except aiohttp.ClientError as e:
                logger.error(f"Claude API error (attempt {attempt + 1}): {e}")
                if attempt == self.max_retries - 1:
                    raise

        raise SparkloopError("Max retries exceeded")


class MockLLMClient(LLMClient):
    """
    Mock LLM client for testing.

    Responses can be queued in order with set_response, or routed by a
    marker string that appears in the prompt with route.
    """

    def __init__(self):
        self.responses: list = []
        self.routes: dict[str, str] = {}
        self.prompts: list[str] = []
        self.call_count = 0

    def set_response(self, response) -> None:
        """Queue the next response. An exception instance is raised instead."""
        self.responses.append(response)

    def route(self, marker: str, response) -> None:
        """Answer every prompt containing `marker` with `response`."""
        self.routes[marker] = response

    async def generate(
        self,
        prompt: str,
        system: Optional[str] = None,
        max_tokens: int = 1024,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """Return mock response."""
        self.call_count += 1
        self.prompts.append(prompt)

        content = "Mock response"
        for marker, response in self.routes.items():
            if marker in prompt:
                content = response
                break
        else:
            if self.responses:
                content = self.responses.pop(0)

        if isinstance(content, BaseException):
            raise content

        return LLMResponse(
            content=content,
            model="mock",
            usage={"input_tokens": 100, "output_tokens": 50},
        )
