"""
Terminal client: ask questions and watch the answers render as live Markdown.

Usage:
    stream-client                      # Interactive mode
    stream-client --query "Weather in Oslo today?"
    stream-client --base-url http://localhost:8000
"""

from __future__ import annotations

import argparse
import asyncio

from rich.console import Console, RenderableType
from rich.live import Live
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Prompt
from rich.text import Text

from client.aggregator import DocumentAggregator
from client.config import ClientSettings, get_client_settings
from client.transport import StreamingClient

EXIT_COMMANDS = ("exit", "quit", "q")

PLACEHOLDER = Panel(
    "[bold blue]Streaming Agent[/bold blue]\n\n"
    "Ask anything; answers stream in as they are written.\n"
    "Weather questions are looked up live.\n"
    "Type [cyan]'exit'[/cyan] or [cyan]'quit'[/cyan] to end.",
    title="Ask me anything",
    border_style="blue",
)


def render_turn(text: str) -> RenderableType:
    """Render one turn of the document as Markdown."""
    if not text.strip():
        return Text("…", style="dim")
    return Markdown(text)


async def run_turn(aggregator: DocumentAggregator, console: Console, query: str) -> None:
    """Submit ``query`` and render its part of the document until the session ends."""
    offset = len(aggregator.document)

    with Live(render_turn(""), console=console, refresh_per_second=12, vertical_overflow="visible") as live:

        def on_change(document: str, busy: bool) -> None:
            live.update(render_turn(document[offset:]))

        aggregator.on_change(on_change)
        try:
            if not aggregator.submit(query):
                return
            await aggregator.wait()
        except asyncio.CancelledError:
            await aggregator.cancel()
            raise
        finally:
            aggregator.remove_listener(on_change)


async def run_client(settings: ClientSettings, query: str | None = None, console: Console | None = None) -> None:
    """Run one-shot (``query`` given) or interactive mode."""
    console = console or Console()

    async with StreamingClient(settings) as client:
        aggregator = DocumentAggregator(client)

        if query:
            await run_turn(aggregator, console, query)
            return

        console.print(PLACEHOLDER)
        while True:
            try:
                # Input is only read between sessions, so it is locked while busy
                user_input = await asyncio.to_thread(Prompt.ask, "\n[bold cyan]You[/bold cyan]", console=console)
            except (KeyboardInterrupt, EOFError):
                break

            if not user_input.strip():
                continue
            if user_input.strip().lower() in EXIT_COMMANDS:
                console.print("[dim]Goodbye.[/dim]")
                break

            await run_turn(aggregator, console, user_input)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Stream answers from the streaming agent API.")
    parser.add_argument(
        "--base-url",
        default=None,
        help="Server base URL (default: STREAM_CLIENT_BASE_URL or http://localhost:8000)",
    )
    parser.add_argument(
        "--query",
        default=None,
        help="Ask a single question and exit",
    )
    args = parser.parse_args(argv)

    settings = ClientSettings(base_url=args.base_url) if args.base_url else get_client_settings()

    try:
        asyncio.run(run_client(settings, query=args.query))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
