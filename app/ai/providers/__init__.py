"""Provider implementations."""

from app.ai.providers.base import AIModel, ModelResponse, Provider, SimpleModelResponse
from app.ai.providers.openai_chat import ChatCompletionsModel, OpenAIProvider
from app.ai.providers.openrouter import OpenRouterProvider

__all__ = ["AIModel", "ModelResponse", "SimpleModelResponse", "Provider", "ChatCompletionsModel", "OpenAIProvider", "OpenRouterProvider"]
