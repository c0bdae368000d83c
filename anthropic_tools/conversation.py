"""Multi-turn conversation with automatic tool execution.

A Conversation owns a transcript and a ToolRegistry. ``send`` keeps
requesting Messages and feeding tool results back until the model
answers without tool uses, or the round-trip ceiling is hit.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from anthropic_tools.exceptions import ToolRoundLimitError
from anthropic_tools.models import AssistantMessage, Message, UserMessage
from anthropic_tools.tools.registry import ToolRegistry

if TYPE_CHECKING:
    from anthropic_tools.client.client import AnthropicClient
    from anthropic_tools.models import TranscriptEntry
    from anthropic_tools.tools.tool import Tool

logger = logging.getLogger(__name__)


def _as_content(content: str | Iterable[Mapping[str, Any]]) -> str | tuple[dict[str, Any], ...]:
    if isinstance(content, str):
        return content
    return tuple(dict(block) for block in content)


class Conversation:
    """A transcript plus the tools offered on every request.

    Usage:
        conversation = Conversation(client, system="Be brief.", tools=[weather_tool])
        reply = await conversation.send("What's the weather in Paris?")
        print(reply.text)
    """

    def __init__(
        self,
        client: AnthropicClient,
        *,
        system: str | None = None,
        tools: ToolRegistry | Iterable[Tool] | None = None,
        max_tool_rounds: int | None = None,
    ):
        """Initialize the conversation.

        Args:
            client: Client used for every request
            system: System prompt sent with every request
            tools: Tools (or a prepared registry) offered to the model
            max_tool_rounds: Tool round trips allowed per send()
                (defaults to client.config.max_tool_rounds)

        Raises:
            ValueError: max_tool_rounds is less than 1
        """
        if max_tool_rounds is not None and max_tool_rounds < 1:
            raise ValueError(f"max_tool_rounds must be at least 1, got {max_tool_rounds}")
        self.client = client
        self.system = system
        if isinstance(tools, ToolRegistry):
            self.tools = tools
        else:
            self.tools = ToolRegistry(tools or (), metrics=client.metrics)
        if max_tool_rounds is None:
            max_tool_rounds = client.config.max_tool_rounds
        self.max_tool_rounds = max_tool_rounds
        self._messages: list[TranscriptEntry] = []
        self._lock = asyncio.Lock()

    # -------------------------------------------------------------------------
    # Transcript
    # -------------------------------------------------------------------------

    @property
    def messages(self) -> tuple[TranscriptEntry, ...]:
        return tuple(self._messages)

    def add_user_message(self, content: str | Iterable[Mapping[str, Any]]) -> Conversation:
        self._messages.append(UserMessage(content=_as_content(content)))
        return self

    def add_assistant_message(
        self,
        content: str | Iterable[Mapping[str, Any]] | Message,
    ) -> Conversation:
        if isinstance(content, Message):
            self._messages.append(content)
        else:
            self._messages.append(AssistantMessage(content=_as_content(content)))
        return self

    def add_tools(self, *tools: Tool) -> Conversation:
        """Register more tools.

        Raises:
            ToolRegistrationError: A tool name is already registered.
        """
        for item in tools:
            self.tools.register(item)
        return self

    def clear(self) -> Conversation:
        """Empty the transcript. Tools and system prompt are kept."""
        self._messages = []
        return self

    def to_params(self) -> list[dict[str, Any]]:
        """The transcript as request ``messages[]`` dicts."""
        return [entry.to_param() for entry in self._messages]

    # -------------------------------------------------------------------------
    # Turn loop
    # -------------------------------------------------------------------------

    async def _request(self, **kwargs: Any) -> Message:
        message = await self.client.create_message(
            self._messages,
            tools=self.tools,
            system=self.system,
            **kwargs,
        )
        self._messages.append(message)
        return message

    async def send(
        self,
        content: str | Iterable[Mapping[str, Any]] | None = None,
        *,
        max_tokens: int | None = None,
        temperature: float | None = None,
        tool_choice: str | Mapping[str, Any] | None = None,
        disable_parallel_tool_use: bool | None = None,
    ) -> Message:
        """Send a user turn and run the tool loop to a final answer.

        ``tool_choice`` applies to the first request only; follow-up
        requests carrying tool results let the model choose freely.
        Tools run concurrently only when ``disable_parallel_tool_use`` is
        explicitly False.

        Args:
            content: User content to append first (None sends the
                transcript as it stands)
            max_tokens: Output token limit per request
            temperature: Sampling temperature per request
            tool_choice: Tool choice for the first request
            disable_parallel_tool_use: Forwarded to every request

        Returns:
            The first Message that contains no tool uses

        Raises:
            ValueError: The transcript is empty.
            ToolRoundLimitError: The model kept requesting tools past
                max_tool_rounds. The transcript keeps every turn so far.
            APIError: A request failed. The transcript is not rolled back.
        """
        async with self._lock:
            if content is not None:
                self.add_user_message(content)
            if not self._messages:
                raise ValueError("Cannot send an empty conversation")

            options: dict[str, Any] = {
                "max_tokens": max_tokens,
                "temperature": temperature,
                "disable_parallel_tool_use": disable_parallel_tool_use,
            }
            message = await self._request(tool_choice=tool_choice, **options)

            rounds = 0
            while message.has_tool_use:
                if rounds >= self.max_tool_rounds:
                    raise ToolRoundLimitError(
                        f"Model still requested tools after {rounds} round trips",
                        rounds=rounds,
                        last_message=message,
                        correlation_id=message.request_id,
                    )
                rounds += 1
                logger.debug(
                    "Tool round %d: %s",
                    rounds,
                    ", ".join(use.name for use in message.tool_uses),
                )
                results = await self.tools.invoke(
                    message.tool_uses,
                    parallel=disable_parallel_tool_use is False,
                )
                self._messages.append(UserMessage(tool_results=tuple(results)))
                message = await self._request(**options)

            return message
