"""Messages API endpoints for AnthropicClient.

Provides message creation (blocking and streaming) and token counting.
"""

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from anthropic_tools.client.payload import build_count_tokens_payload, build_payload
from anthropic_tools.exceptions import APIError
from anthropic_tools.instrumentation import record_safely
from anthropic_tools.models import Message, TokenCount, parse_message
from anthropic_tools.streaming.session import StreamController, StreamingSession

if TYPE_CHECKING:
    from anthropic_tools.tools.registry import ToolRegistry
    from anthropic_tools.tools.tool import Tool

    ToolsArg = ToolRegistry | Iterable[Tool | Mapping[str, Any]] | None

MESSAGES_PATH = "/v1/messages"
COUNT_TOKENS_PATH = "/v1/messages/count_tokens"


class MessagesMixin:
    """Mixin providing the Messages API operations."""

    def _record_usage(self, message: Message) -> None:
        record_safely(
            self.metrics.record_token_usage,
            input_tokens=message.usage.input_tokens,
            output_tokens=message.usage.output_tokens,
        )

    async def create_message(
        self,
        messages: Any,
        *,
        tools: "ToolsArg" = None,
        system: str | list[dict[str, Any]] | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        tool_choice: str | Mapping[str, Any] | None = None,
        disable_parallel_tool_use: bool | None = None,
        **extra: Any,
    ) -> Message:
        """Send one request and return the complete assistant Message.

        Args:
            messages: Transcript entries (models, dicts or strings)
            tools: Tools offered to the model
            system: System prompt
            model: Model id (defaults to config.model)
            max_tokens: Output token limit (defaults to config.max_tokens)
            temperature: Sampling temperature (defaults to config.temperature)
            tool_choice: "auto", "any", "none", {"tool": name} or a wire dict
            disable_parallel_tool_use: Ask for at most one tool use per turn
            **extra: Additional request fields (stop_sequences, top_p, ...)

        Returns:
            The parsed Message, carrying the request id when available

        Raises:
            APIError: HTTP or connection failure after retries
        """
        payload = build_payload(
            self.config,
            messages,
            model=model,
            max_tokens=max_tokens,
            temperature=temperature,
            system=system,
            tools=tools,
            tool_choice=tool_choice,
            disable_parallel_tool_use=disable_parallel_tool_use,
            **extra,
        )
        body, request_id = await self._post(
            MESSAGES_PATH,
            payload,
            timeout=self.config.request_timeout(payload["max_tokens"]),
        )
        if not isinstance(body, dict):
            raise APIError(
                "Unexpected response body from the Messages API",
                status_code=200,
                body=body,
                request_id=request_id,
            )
        message = parse_message(body, request_id=request_id)
        self._record_usage(message)
        return message

    def stream(
        self,
        messages: Any,
        *,
        tools: "ToolsArg" = None,
        system: str | list[dict[str, Any]] | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        tool_choice: str | Mapping[str, Any] | None = None,
        disable_parallel_tool_use: bool | None = None,
        controller: StreamController | None = None,
        **extra: Any,
    ) -> StreamingSession:
        """Prepare a streaming request.

        Nothing is sent until the returned session is consumed, so
        handlers can be registered first and an abort before consumption
        skips the request entirely.

        Usage:
            session = client.stream(messages)
            session.on("text", lambda text: print(text, end=""))
            message = await session.final_message()
        """
        payload = build_payload(
            self.config,
            messages,
            model=model,
            max_tokens=max_tokens,
            temperature=temperature,
            system=system,
            tools=tools,
            tool_choice=tool_choice,
            disable_parallel_tool_use=disable_parallel_tool_use,
            stream=True,
            **extra,
        )
        timeout = self.config.request_timeout(payload["max_tokens"])
        return StreamingSession(
            lambda: self._stream(MESSAGES_PATH, payload, timeout=timeout),
            controller=controller,
            on_complete=self._record_usage,
        )

    async def count_tokens(
        self,
        messages: Any,
        *,
        tools: "ToolsArg" = None,
        system: str | list[dict[str, Any]] | None = None,
        model: str | None = None,
    ) -> TokenCount:
        """Count the input tokens a request would use, without running it."""
        payload = build_count_tokens_payload(
            self.config,
            messages,
            model=model,
            system=system,
            tools=tools,
        )
        body, request_id = await self._post(COUNT_TOKENS_PATH, payload)
        if not isinstance(body, dict) or "input_tokens" not in body:
            raise APIError(
                "Unexpected response body from count_tokens",
                status_code=200,
                body=body,
                request_id=request_id,
            )
        return TokenCount(input_tokens=body["input_tokens"], request_id=request_id)
