"""Model-call error hierarchy.

All LLM errors inherit from AgentLoopError. The orchestrator maps them
onto agent error codes (API_ERROR, RATE_LIMIT_ERROR, TOKEN_LIMIT_EXCEEDED,
INVALID_RESPONSE).
"""

from __future__ import annotations

from agentloop.exceptions import AgentLoopError


class LLMClientError(AgentLoopError):
    """Base for all LLM client errors.

    Attributes:
        provider: Provider label, if known.
        status_code: HTTP status of the failed request, if any.
    """

    def __init__(
        self,
        message: str = "",
        *,
        provider: str | None = None,
        status_code: int | None = None,
    ) -> None:
        self.provider = provider
        self.status_code = status_code
        super().__init__(message)


class LLMConfigError(LLMClientError):
    """Missing or invalid LLM configuration (e.g., no API key)."""


class LLMAuthError(LLMClientError):
    """Authentication failed (401/403)."""


class LLMAPIError(LLMClientError):
    """Non-retryable HTTP error from the API."""


class LLMRateLimitError(LLMClientError):
    """Rate limited by the API (429).

    Attributes:
        retry_after: Seconds to wait before retrying (from Retry-After header),
            or None if not provided.
        limit: Request or token limit reported by the provider, if any.
    """

    def __init__(
        self,
        message: str = "Rate limited",
        retry_after: float | None = None,
        *,
        limit: int | None = None,
        provider: str | None = None,
    ) -> None:
        self.retry_after = retry_after
        self.limit = limit
        if retry_after is not None:
            message = f"{message} (retry after {retry_after}s)"
        super().__init__(message, provider=provider, status_code=429)


class LLMTokenLimitError(LLMClientError):
    """Request exceeded the model's context or completion token limit."""

    def __init__(
        self,
        message: str = "Token limit exceeded",
        *,
        requested_tokens: int | None = None,
        maximum_tokens: int | None = None,
        provider: str | None = None,
        status_code: int | None = None,
    ) -> None:
        self.requested_tokens = requested_tokens
        self.maximum_tokens = maximum_tokens
        super().__init__(message, provider=provider, status_code=status_code)


class LLMResponseError(LLMClientError):
    """Unexpected response format from LLM API.

    Attributes:
        response_type: Short description of what was received instead.
    """

    def __init__(
        self,
        message: str = "",
        *,
        response_type: str | None = None,
        provider: str | None = None,
    ) -> None:
        self.response_type = response_type
        super().__init__(message, provider=provider)
