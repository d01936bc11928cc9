"""agentloop: structured-output agent execution with validated retries.

An agent definition names a model, three prompt generators, an output tool
and a validation pipeline. Executing it runs attempts until the model's
output passes every validation layer, feeding each failure back as the
next attempt's error prompt.
"""

from agentloop._version import __version__

# Results
from agentloop.result import (
    Err,
    Ok,
    Result,
    chain,
    collect,
    err,
    is_err,
    is_ok,
    is_result,
    map_error,
    map_result,
    ok,
    unwrap_or,
    unwrap_or_else,
)

# Errors
from agentloop.errors import (
    AgentError,
    AgentErrorCategory,
    AgentErrorCode,
    ErrorSeverity,
    ExecutionPhase,
    PromptType,
    StructuredError,
    agent_error,
    format_agent_error,
    format_agent_errors_for_developer,
    is_agent_error,
    is_agent_error_array,
)
from agentloop.exceptions import (
    AgentDefinitionError,
    AgentLoopError,
    AgentProcessingError,
    StructuredErrorException,
    raise_for_failure,
)

# Execution context
from agentloop.context import CancelSignal, ExecutionContext, cancel_after, is_cancelled

# Definition
from agentloop.definition import (
    AgentDefinition,
    AgentState,
    HelperTool,
    ModelConfig,
    ObservabilityConfig,
    OutputToolConfig,
    PromptsConfig,
    StateUpdate,
    ToolsConfig,
    ValidationConfig,
    collect_definition_errors,
    define_agent,
)

# Prompts
from agentloop.prompts import (
    InitialPrompts,
    PromptTemplate,
    RetryPrompts,
    build_prompts,
    compile_template,
    load_template,
)

# Validation
from agentloop.validation import (
    CustomValidator,
    LayerType,
    ValidationLayer,
    ValidationLayerMetadata,
    create_custom_validator,
    deep_freeze,
    format_validation_error_for_prompt,
    format_validation_errors_for_model,
    validate_layers,
)

# Model calls
from agentloop.llm import (
    LLMClientError,
    ModelCaller,
    ModelRequest,
    ModelTurn,
    OpenAIModelCaller,
    TokenUsage,
    ToolCall,
)

# Orchestration
from agentloop.orchestrator import (
    AgentExecutor,
    ExecuteCallbacks,
    ExecuteFailure,
    ExecuteMetadata,
    ExecuteSuccess,
    TokenMetrics,
    execute_agent,
    logging_callbacks,
)

__all__ = [
    "__version__",
    # Results
    "Err",
    "Ok",
    "Result",
    "chain",
    "collect",
    "err",
    "is_err",
    "is_ok",
    "is_result",
    "map_error",
    "map_result",
    "ok",
    "unwrap_or",
    "unwrap_or_else",
    # Errors
    "AgentError",
    "AgentErrorCategory",
    "AgentErrorCode",
    "ErrorSeverity",
    "ExecutionPhase",
    "PromptType",
    "StructuredError",
    "agent_error",
    "format_agent_error",
    "format_agent_errors_for_developer",
    "is_agent_error",
    "is_agent_error_array",
    "AgentDefinitionError",
    "AgentLoopError",
    "AgentProcessingError",
    "StructuredErrorException",
    "raise_for_failure",
    # Execution context
    "CancelSignal",
    "ExecutionContext",
    "cancel_after",
    "is_cancelled",
    # Definition
    "AgentDefinition",
    "AgentState",
    "HelperTool",
    "ModelConfig",
    "ObservabilityConfig",
    "OutputToolConfig",
    "PromptsConfig",
    "StateUpdate",
    "ToolsConfig",
    "ValidationConfig",
    "collect_definition_errors",
    "define_agent",
    # Prompts
    "InitialPrompts",
    "PromptTemplate",
    "RetryPrompts",
    "build_prompts",
    "compile_template",
    "load_template",
    # Validation
    "CustomValidator",
    "LayerType",
    "ValidationLayer",
    "ValidationLayerMetadata",
    "create_custom_validator",
    "deep_freeze",
    "format_validation_error_for_prompt",
    "format_validation_errors_for_model",
    "validate_layers",
    # Model calls
    "LLMClientError",
    "ModelCaller",
    "ModelRequest",
    "ModelTurn",
    "OpenAIModelCaller",
    "TokenUsage",
    "ToolCall",
    # Orchestration
    "AgentExecutor",
    "ExecuteCallbacks",
    "ExecuteFailure",
    "ExecuteMetadata",
    "ExecuteSuccess",
    "TokenMetrics",
    "execute_agent",
    "logging_callbacks",
]
