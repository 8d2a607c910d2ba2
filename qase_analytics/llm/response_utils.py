"""
LLM response utilities for handling multi-format model outputs.

Supports both:
- Simple string responses (gpt-4o-mini, gpt-4o, etc.)
- Structured content blocks (reasoning models return a list of blocks)
"""

import json
from typing import Any, Dict, Optional

from loguru import logger


def extract_text_from_response(response: Any) -> str:
    """
    Extract text content from an LLM response or streamed chunk.

    Accepts an AIMessage/AIMessageChunk, a plain string or a list of content
    blocks. Reasoning blocks are skipped.
    """
    content = response.content if hasattr(response, "content") else response

    if not content:
        return ""

    if isinstance(content, str):
        return content

    if isinstance(content, list):
        text_parts = []
        for block in content:
            if isinstance(block, dict):
                if block.get("type") == "reasoning":
                    continue
                if "text" in block:
                    text_parts.append(block["text"])
            elif isinstance(block, str):
                text_parts.append(block)
        return "".join(text_parts)

    return str(content)


def parse_json_response(response: Any) -> Optional[Dict[str, Any]]:
    """
    Parse a JSON object out of a model reply.

    Tolerates markdown code fences around the object. Returns None when the
    reply is not a JSON object.
    """
    text = extract_text_from_response(response).strip()
    if text.startswith("```"):
        text = text.strip("`")
        if text.lower().startswith("json"):
            text = text[4:]
        text = text.strip()

    try:
        parsed = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        logger.warning(f"Model reply is not valid JSON: {text[:200]}")
        return None

    if not isinstance(parsed, dict):
        logger.warning(f"Model reply is JSON but not an object: {type(parsed).__name__}")
        return None
    return parsed
