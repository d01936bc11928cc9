"""Model-call layer: protocol, wire records, errors, and the built-in client."""

from agentloop.llm.client import OpenAIModelCaller
from agentloop.llm.errors import (
    LLMAPIError,
    LLMAuthError,
    LLMClientError,
    LLMConfigError,
    LLMRateLimitError,
    LLMResponseError,
    LLMTokenLimitError,
)
from agentloop.llm.models import (
    Exchange,
    ModelRequest,
    ModelTurn,
    StopReason,
    TokenUsage,
    ToolCall,
    ToolResultMessage,
    ToolSpec,
)
from agentloop.llm.protocols import ModelCaller

__all__ = [
    "Exchange",
    "LLMAPIError",
    "LLMAuthError",
    "LLMClientError",
    "LLMConfigError",
    "LLMRateLimitError",
    "LLMResponseError",
    "LLMTokenLimitError",
    "ModelCaller",
    "ModelRequest",
    "ModelTurn",
    "OpenAIModelCaller",
    "StopReason",
    "TokenUsage",
    "ToolCall",
    "ToolResultMessage",
    "ToolSpec",
]
