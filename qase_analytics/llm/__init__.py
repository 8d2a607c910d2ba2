"""
LLM layer - Client factory and response utilities
"""

from qase_analytics.llm.client import LLMFactory, create_llm
from qase_analytics.llm.response_utils import (
    extract_text_from_response,
    parse_json_response,
)

__all__ = [
    "LLMFactory",
    "create_llm",
    "extract_text_from_response",
    "parse_json_response",
]
