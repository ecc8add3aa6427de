"""Text generation for content-bearing actions."""

from .composer import ContentGenerator, LLMContentGenerator, trim_to_limit

__all__ = ["ContentGenerator", "LLMContentGenerator", "trim_to_limit"]
