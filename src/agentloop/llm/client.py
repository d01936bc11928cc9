"""Built-in OpenAI-compatible httpx model caller with tenacity retry.

Implements the ModelCaller protocol over the chat completions API.
Reads configuration from constructor arguments or environment variables.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any

import httpx
import tenacity

from agentloop.context import CancelSignal, is_cancelled
from agentloop.llm.errors import (
    LLMAPIError,
    LLMAuthError,
    LLMConfigError,
    LLMRateLimitError,
    LLMResponseError,
    LLMTokenLimitError,
)
from agentloop.llm.models import (
    ModelRequest,
    ModelTurn,
    StopReason,
    TokenUsage,
    ToolCall,
    ToolResultMessage,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"

_RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}
_AUTH_ERROR_STATUS_CODES = {401, 403}
_TOKEN_LIMIT_ERROR_CODES = {"context_length_exceeded", "max_tokens_exceeded"}

_STOP_REASONS = {
    "stop": StopReason.END_TURN,
    "tool_calls": StopReason.TOOL_USE,
    "function_call": StopReason.TOOL_USE,
    "length": StopReason.MAX_TOKENS,
}


def _is_retryable(exc: BaseException) -> bool:
    """Check if an exception is retryable.

    Retryable: 429, 500, 502, 503, 504, connection errors.
    Not retryable: 401, 403, 400, other client errors.
    """
    if isinstance(exc, (LLMAuthError, LLMTokenLimitError, LLMResponseError)):
        return False
    if isinstance(exc, LLMRateLimitError):
        return True
    if isinstance(exc, LLMAPIError):
        return exc.status_code in _RETRYABLE_STATUS_CODES
    return isinstance(exc, (httpx.ConnectError, httpx.ConnectTimeout))


def _parse_retry_after(raw: str | None) -> float | None:
    if raw is None:
        return None
    try:
        return float(raw)
    except (ValueError, TypeError):
        return None


def _error_body(response: httpx.Response) -> dict:
    try:
        body = response.json()
    except ValueError:
        return {}
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return body["error"]
    return {}


class OpenAIModelCaller:
    """Async httpx model caller for OpenAI-compatible chat completions.

    Retries transient errors (429, 5xx, connection failures) with
    exponential backoff. Fails immediately on authentication errors and
    token-limit errors. Stops retrying once the cancellation signal is set.

    Usage::

        async with OpenAIModelCaller(api_key="sk-...") as caller:
            result = await execute_agent(agent, caller, data)
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        *,
        provider: str = "openai",
        timeout: float = 120.0,
        max_retries: int = 3,
        retry_wait: tenacity.wait.wait_base | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the caller.

        Args:
            api_key: API key. Falls back to AGENTLOOP_API_KEY env var.
            base_url: API base URL. Falls back to AGENTLOOP_BASE_URL env var,
                then to https://api.openai.com/v1.
            provider: Provider label used in error reports.
            timeout: Request timeout in seconds.
            max_retries: Maximum number of attempts for retryable errors.
            retry_wait: tenacity wait strategy between retries.
            http_client: Pre-built ``httpx.AsyncClient`` (e.g. with a mock
                transport). Auth headers are added per request.

        Raises:
            LLMConfigError: If no API key is provided or found in environment.
        """
        self._api_key = api_key or os.environ.get("AGENTLOOP_API_KEY", "")
        if not self._api_key:
            raise LLMConfigError(
                "No API key provided. Pass api_key= or set AGENTLOOP_API_KEY "
                "environment variable.",
                provider=provider,
            )
        self._base_url = (
            base_url or os.environ.get("AGENTLOOP_BASE_URL", DEFAULT_BASE_URL)
        ).rstrip("/")
        self.provider = provider
        self._max_retries = max_retries
        self._retry_wait = retry_wait or (
            tenacity.wait_exponential(multiplier=1, min=1, max=30)
            + tenacity.wait_random(0, 2)
        )
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    @property
    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
        }

    async def call(
        self,
        request: ModelRequest,
        signal: CancelSignal | None = None,
    ) -> ModelTurn:
        """Send one chat completion request with retry.

        Uses tenacity.AsyncRetrying programmatically so max_retries is
        configurable per instance.

        Raises:
            LLMAuthError: On 401/403 (no retry).
            LLMRateLimitError: On 429 after all retries exhausted.
            LLMTokenLimitError: When the provider rejects the request size.
            LLMResponseError: On unexpected response format.
            LLMAPIError: On other HTTP errors.
        """
        attempts_exhausted = tenacity.stop_after_attempt(self._max_retries)

        def _stop(retry_state: tenacity.RetryCallState) -> bool:
            return attempts_exhausted(retry_state) or is_cancelled(signal)

        retryer = tenacity.AsyncRetrying(
            retry=tenacity.retry_if_exception(_is_retryable),
            wait=self._retry_wait,
            stop=_stop,
            before_sleep=tenacity.before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        data = await retryer(self._post, self.build_payload(request))
        return self.parse_turn(data)

    async def _post(self, payload: dict[str, Any]) -> dict:
        """Execute a single chat completion request (no retry)."""
        response = await self._client.post(
            f"{self._base_url}/chat/completions",
            json=payload,
            headers=self._headers,
        )
        status = response.status_code

        if status in _AUTH_ERROR_STATUS_CODES:
            raise LLMAuthError(
                f"Authentication failed: HTTP {status} - {response.text}",
                provider=self.provider,
                status_code=status,
            )

        if status == 429:
            raise LLMRateLimitError(
                f"Rate limited: HTTP 429 - {response.text}",
                retry_after=_parse_retry_after(response.headers.get("Retry-After")),
                provider=self.provider,
            )

        if status >= 400:
            error = _error_body(response)
            message = error.get("message") or response.text
            if error.get("code") in _TOKEN_LIMIT_ERROR_CODES:
                raise LLMTokenLimitError(
                    message,
                    provider=self.provider,
                    status_code=status,
                )
            raise LLMAPIError(
                f"HTTP {status} - {message}",
                provider=self.provider,
                status_code=status,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise LLMResponseError(
                f"Response body is not JSON: {exc}",
                response_type="non-JSON body",
                provider=self.provider,
            ) from exc
        if not isinstance(data, dict) or "choices" not in data:
            raise LLMResponseError(
                f"Unexpected response format: missing 'choices' key. Response: {data}",
                response_type=type(data).__name__,
                provider=self.provider,
            )
        return data

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    @staticmethod
    def build_payload(request: ModelRequest) -> dict[str, Any]:
        """Convert a ModelRequest into a chat completions payload."""
        messages: list[dict[str, Any]] = [
            {"role": "system", "content": request.system},
            {"role": "user", "content": request.user},
        ]
        if request.error:
            messages.append({"role": "user", "content": request.error})

        for exchange in request.exchanges:
            if isinstance(exchange, ToolResultMessage):
                messages.append(
                    {
                        "role": "tool",
                        "tool_call_id": exchange.tool_call_id,
                        "content": exchange.content,
                    }
                )
                continue
            message: dict[str, Any] = {
                "role": "assistant",
                "content": exchange.text or None,
            }
            if exchange.tool_calls:
                message["tool_calls"] = [
                    {
                        "id": call.id,
                        "type": "function",
                        "function": {
                            "name": call.name,
                            "arguments": json.dumps(call.arguments),
                        },
                    }
                    for call in exchange.tool_calls
                ]
            messages.append(message)

        payload: dict[str, Any] = {
            "model": request.model.name,
            "messages": messages,
        }
        if request.tools:
            payload["tools"] = [tool.to_openai() for tool in request.tools]
            payload["tool_choice"] = "auto"
        if request.model.temperature is not None:
            payload["temperature"] = request.model.temperature
        if request.model.max_tokens is not None:
            payload["max_tokens"] = request.model.max_tokens
        return payload

    def parse_turn(self, response: dict) -> ModelTurn:
        """Extract text, tool calls, usage and stop reason from a response dict.

        Raises:
            LLMResponseError: If the response format is unexpected.
        """
        try:
            choice = response["choices"][0]
            message = choice["message"]
        except (KeyError, IndexError, TypeError) as exc:
            raise LLMResponseError(
                f"Cannot extract message from response: {exc}. Response: {response}",
                response_type="malformed choices",
                provider=self.provider,
            ) from exc

        tool_calls: list[ToolCall] = []
        for raw in message.get("tool_calls") or []:
            function = raw.get("function", {})
            arguments = function.get("arguments") or "{}"
            try:
                parsed = json.loads(arguments) if isinstance(arguments, str) else arguments
            except json.JSONDecodeError as exc:
                raise LLMResponseError(
                    f"Tool call arguments are not valid JSON: {exc}",
                    response_type="malformed tool arguments",
                    provider=self.provider,
                ) from exc
            if not isinstance(parsed, dict):
                raise LLMResponseError(
                    f"Tool call arguments must be an object, got {type(parsed).__name__}",
                    response_type="malformed tool arguments",
                    provider=self.provider,
                )
            tool_calls.append(
                ToolCall(id=raw.get("id", ""), name=function.get("name", ""), arguments=parsed)
            )

        stop_reason = _STOP_REASONS.get(choice.get("finish_reason"), StopReason.OTHER)
        if tool_calls:
            stop_reason = StopReason.TOOL_USE

        return ModelTurn(
            text=message.get("content") or "",
            tool_calls=tool_calls,
            usage=self.extract_usage(response),
            stop_reason=stop_reason,
        )

    @staticmethod
    def extract_usage(response: dict) -> TokenUsage:
        """Extract token usage, including cached prompt tokens when reported."""
        usage = response.get("usage") or {}
        details = usage.get("prompt_tokens_details") or {}
        return TokenUsage(
            input=usage.get("prompt_tokens") or 0,
            output=usage.get("completion_tokens") or 0,
            cache_read_input=details.get("cached_tokens") or 0,
        )

    async def aclose(self) -> None:
        """Close the underlying httpx client."""
        await self._client.aclose()

    async def __aenter__(self) -> OpenAIModelCaller:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()
