"""Provider-neutral request and response records for one model turn."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Union

if TYPE_CHECKING:
    from agentloop.definition import ModelConfig


@dataclass(frozen=True)
class ToolCall:
    """A tool invocation requested by the model."""

    id: str
    name: str
    arguments: dict = field(default_factory=dict)


@dataclass(frozen=True)
class ToolSpec:
    """A tool advertised to the model.

    Attributes:
        name: Tool name.
        description: When and why to use this tool.
        parameters: JSON Schema dict describing the arguments.
    """

    name: str
    description: str
    parameters: dict

    def to_openai(self) -> dict:
        """Convert to OpenAI function-calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


@dataclass(frozen=True)
class TokenUsage:
    """Token counts reported for a single model call."""

    input: int = 0
    output: int = 0
    cache_creation_input: int = 0
    cache_read_input: int = 0


class StopReason(str, enum.Enum):
    END_TURN = "end_turn"
    TOOL_USE = "tool_use"
    MAX_TOKENS = "max_tokens"
    OTHER = "other"


@dataclass(frozen=True)
class ModelTurn:
    """What the model returned for one call."""

    text: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)
    usage: TokenUsage = field(default_factory=TokenUsage)
    stop_reason: StopReason = StopReason.END_TURN


@dataclass(frozen=True)
class ToolResultMessage:
    """The result of one tool call, sent back on the next model call."""

    tool_call_id: str
    name: str
    content: str
    is_error: bool = False


Exchange = Union[ModelTurn, ToolResultMessage]


@dataclass(frozen=True)
class ModelRequest:
    """Everything a model caller needs for one turn.

    Attributes:
        system: System prompt.
        user: User prompt (the task).
        error: Feedback prompt from the previous attempt, if any.
        tools: Tools the model may call.
        exchanges: Earlier turns and tool results of the current attempt,
            oldest first.
        model: Model configuration from the agent definition.
    """

    system: str
    user: str
    tools: list[ToolSpec]
    model: ModelConfig
    error: str | None = None
    exchanges: list[Exchange] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
