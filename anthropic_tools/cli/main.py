"""CLI entry point.

Provides the command-line interface with commands for:
- chat: Send one message and print the reply (optionally streamed)
- count-tokens: Count the input tokens of a message
"""

import asyncio
from enum import StrEnum
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from anthropic_tools.client import create_client
from anthropic_tools.exceptions import AnthropicToolsError
from anthropic_tools.logging_config import configure_logging
from anthropic_tools.models import Message, UserMessage
from anthropic_tools.streaming import StreamEventKind

app = typer.Typer(
    name="anthropic-tools",
    help="Command-line access to the Anthropic Messages API",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()


class LogLevel(StrEnum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


@app.callback()
def main(
    log_level: Annotated[
        Optional[LogLevel],  # noqa: UP007
        typer.Option("--log-level", "-l", case_sensitive=False, help="Console log level"),
    ] = None,
) -> None:
    """Configure logging before any command runs."""
    configure_logging(log_level.value if log_level else None)


@app.command()
def chat(
    message: Annotated[str, typer.Argument(help="Message to send")],
    stream: Annotated[
        bool,
        typer.Option("--stream", "-s", help="Print the reply as it is generated"),
    ] = False,
    model: Annotated[
        Optional[str],  # noqa: UP007
        typer.Option("--model", "-m", help="Model id (defaults to ANTHROPIC_MODEL)"),
    ] = None,
    max_tokens: Annotated[
        Optional[int],  # noqa: UP007
        typer.Option("--max-tokens", help="Output token limit"),
    ] = None,
    system: Annotated[
        Optional[str],  # noqa: UP007
        typer.Option("--system", help="System prompt"),
    ] = None,
) -> None:
    """Send a single message and print the reply."""
    try:
        reply = asyncio.run(_chat(message, stream, model, max_tokens, system))
    except AnthropicToolsError as e:
        console.print(f"[red]❌ {type(e).__name__}: {e}[/red]")
        raise typer.Exit(code=1) from e

    if not stream:
        console.print(
            Panel(
                reply.text or "[dim](no text)[/dim]",
                title=reply.model or "reply",
                border_style="green",
            )
        )
    _print_usage(reply)


async def _chat(
    message: str,
    stream: bool,
    model: str | None,
    max_tokens: int | None,
    system: str | None,
) -> Message:
    """Run one chat turn."""
    async with create_client() as client:
        messages = [UserMessage(content=message)]
        if not stream:
            return await client.create_message(
                messages,
                model=model,
                max_tokens=max_tokens,
                system=system,
            )

        session = client.stream(messages, model=model, max_tokens=max_tokens, system=system)
        session.on(StreamEventKind.TEXT, lambda text: console.print(text, end="", markup=False))
        reply = await session.final_message()
        console.print()
        return reply


def _print_usage(reply: Message) -> None:
    table = Table(show_header=True, box=None)
    table.add_column("Stop reason", style="cyan")
    table.add_column("Input tokens", justify="right")
    table.add_column("Output tokens", justify="right")
    table.add_column("Request ID", style="dim")
    table.add_row(
        reply.stop_reason or "-",
        str(reply.usage.input_tokens),
        str(reply.usage.output_tokens),
        reply.request_id or "-",
    )
    console.print(table)


@app.command("count-tokens")
def count_tokens(
    message: Annotated[str, typer.Argument(help="Message to count")],
    model: Annotated[
        Optional[str],  # noqa: UP007
        typer.Option("--model", "-m", help="Model id (defaults to ANTHROPIC_MODEL)"),
    ] = None,
    system: Annotated[
        Optional[str],  # noqa: UP007
        typer.Option("--system", help="System prompt"),
    ] = None,
) -> None:
    """Count the input tokens a message would use."""
    try:
        result = asyncio.run(_count_tokens(message, model, system))
    except AnthropicToolsError as e:
        console.print(f"[red]❌ {type(e).__name__}: {e}[/red]")
        raise typer.Exit(code=1) from e

    console.print(f"[bold]{result.input_tokens}[/bold] input tokens")


async def _count_tokens(message: str, model: str | None, system: str | None):
    async with create_client() as client:
        return await client.count_tokens(
            [UserMessage(content=message)],
            model=model,
            system=system,
        )


if __name__ == "__main__":
    app()
