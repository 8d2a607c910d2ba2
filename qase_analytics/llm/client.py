"""
LLM client factory

Creates chat model instances for the agent, the intent classifier and
general replies. Each request brings its own OpenAI key.
"""

from typing import Callable, Optional

from langchain_core.language_models import BaseChatModel
from langchain_openai import ChatOpenAI
from loguru import logger

from qase_analytics.config.settings import settings

# (api_key, model, temperature, streaming) -> chat model
LLMFactory = Callable[..., BaseChatModel]


def _mask_key(api_key: str) -> str:
    if len(api_key) > 12:
        return api_key[:8] + "..." + api_key[-4:]
    return "***"


def create_llm(
    api_key: Optional[str] = None,
    model: Optional[str] = None,
    temperature: Optional[float] = None,
    streaming: bool = False,
    max_completion_tokens: Optional[int] = None,
) -> BaseChatModel:
    """
    Factory function to create the OpenAI chat model.

    Args:
        api_key: OpenAI key for this request (defaults to settings.openai_api_key)
        model: Model name (defaults to settings.openai_model)
        temperature: Generation temperature (defaults to settings.agent_temperature)
        streaming: Request token streaming from the API
        max_completion_tokens: Max tokens for completion (defaults to settings.max_output_tokens)

    Returns:
        LangChain ChatOpenAI instance
    """
    key = api_key or settings.openai_api_key
    if not key:
        raise ValueError("OpenAI API key is not configured")

    model_name = model or settings.openai_model
    logger.debug(f"Creating ChatOpenAI | model={model_name} | key={_mask_key(key)} | streaming={streaming}")

    return ChatOpenAI(
        api_key=key,
        model=model_name,
        temperature=temperature if temperature is not None else settings.agent_temperature,
        max_completion_tokens=max_completion_tokens or settings.max_output_tokens,
        timeout=settings.llm_timeout_seconds,
        streaming=streaming,
    )
