"""
Strict decoding of completion output.

The completion capability returns untyped text that should contain one JSON
object. decode_response pulls that object out and validates it against a
pydantic schema; anything else raises UnparseableResponse.
"""

from __future__ import annotations

from typing import Optional, Type, TypeVar
import json

from pydantic import BaseModel, ValidationError

from ..exceptions import UnparseableResponse

T = TypeVar("T", bound=BaseModel)

_decoder = json.JSONDecoder()


def extract_json_object(text: Optional[str]) -> dict:
    """Find the first JSON object in a response, tolerating code fences and prose."""
    if not text or not text.strip():
        raise UnparseableResponse("empty response", raw=text or "")

    content = text.strip()

    # Handle markdown code blocks
    if content.startswith("```"):
        lines = content.split("\n")
        content = "\n".join(line for line in lines[1:] if not line.startswith("```"))

    start = content.find("{")
    while start != -1:
        try:
            payload, _ = _decoder.raw_decode(content, start)
        except json.JSONDecodeError:
            start = content.find("{", start + 1)
            continue
        if isinstance(payload, dict):
            return payload
        start = content.find("{", start + 1)

    raise UnparseableResponse("no JSON object in response", raw=text)


def decode_response(text: Optional[str], schema: Type[T]) -> T:
    """Decode and validate a completion response."""
    payload = extract_json_object(text)
    try:
        return schema.model_validate(payload)
    except ValidationError as e:
        raise UnparseableResponse(
            f"response does not match {schema.__name__}: {e.error_count()} errors",
            raw=text or "",
        ) from e
