"""LLM integration: completion clients, prompts and strict decoding."""

from .client import LLMClient, ClaudeClient, MockLLMClient, LLMResponse
from .decoding import decode_response, extract_json_object
from .prompts import PromptTemplates, format_context

__all__ = [
    "LLMClient",
    "ClaudeClient",
    "MockLLMClient",
    "LLMResponse",
    "decode_response",
    "extract_json_object",
    "PromptTemplates",
    "format_context",
]
