"""CLI: globalchat chat, globalchat send, globalchat tail"""

import asyncio
from typing import Optional

import click
from rich.console import Console
from rich.text import Text

from global_chat.client import AsyncGlobalChat
from global_chat.models.message import Message
from global_chat.models.identity import short_id
from global_chat.models.state import FeedState, FeedStatus, Phase

console = Console()


def _get_client(ctx):
    from global_chat.cli.main import _get_client
    return _get_client(ctx)


def _run(coro):
    from global_chat.cli.main import _run
    return _run(coro)


def render_message(message: Message, me: Optional[str]) -> Text:
    mine = message.author_id == me
    line = Text(justify="right" if mine else "left")
    line.append(f"{short_id(message.author_id)} ", style="dim")
    line.append(message.text, style="bold cyan" if mine else "white")
    if message.is_pending:
        line.append(" …", style="dim")
    return line


async def _print_feed(client: AsyncGlobalChat) -> None:
    """Print new messages as snapshots arrive. Runs until cancelled."""
    shown: set[str] = set()
    status: Optional[str] = None
    async for feed in client.updates():
        if feed.status != status:
            status = feed.status
            if status == FeedStatus.DEGRADED:
                console.print("[magenta]Feed degraded, waiting for the backend[/magenta]")
        me = client.state.identity.id if client.state.identity else None
        for message in feed.messages:
            if message.id not in shown and not message.is_pending:
                shown.add(message.id)
                console.print(render_message(message, me))


async def _stop(task: "asyncio.Task[None]") -> None:
    """Cancel ``task`` and wait until its cleanup has run."""
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass


async def _wait_online(client: AsyncGlobalChat, timeout: float) -> bool:
    await client.start()
    try:
        state = await client.session.wait_for(Phase.ONLINE, Phase.INIT_ERROR, timeout=timeout)
    except TimeoutError:
        state = client.state
    if not state.is_ready:
        console.print(f"[red]{state.status}[/red]")
        return False
    console.print(f"[dim]{state.status} as {short_id(state.identity.id)}[/dim]")
    return True


@click.command("chat")
@click.option("--timeout", default=15.0, type=float, show_default=True)
@click.pass_context
def chat_cmd(ctx: click.Context, timeout: float):
    """Interactive chat in the public room."""

    async def _chat() -> int:
        client = _get_client(ctx)
        if not await _wait_online(client, timeout):
            await client.close()
            return 1
        printer = asyncio.get_running_loop().create_task(_print_feed(client))
        console.print("[cyan]Type your message (/quit to exit). Messages are public. Be kind.[/cyan]\n")
        loop = asyncio.get_running_loop()
        try:
            while True:
                line = await loop.run_in_executor(None, input)
                if line.strip().lower() in ("/quit", "/exit"):
                    break
                client.composer.draft = line
                if client.composer.can_submit and await client.composer.submit() is None:
                    console.print("[red]Send failed. Enter the same text to retry[/red]")
        except (KeyboardInterrupt, EOFError):
            pass
        finally:
            await _stop(printer)
            await client.close()
        return 0

    ctx.exit(_run(_chat()))


@click.command("send")
@click.argument("message")
@click.option("--timeout", default=15.0, type=float, show_default=True)
@click.pass_context
def send_cmd(ctx: click.Context, message: str, timeout: float):
    """Send a one-shot message and wait until the room shows it."""

    async def _send() -> int:
        client = _get_client(ctx)
        try:
            if not await _wait_online(client, timeout):
                return 1
            doc_id = await client.send(message)
            if doc_id is None:
                console.print("[red]Send failed[/red]")
                return 1

            def delivered(feed: FeedState) -> bool:
                return any(m.id == doc_id for m in feed.messages)

            try:
                await client.feed.wait_for(delivered, timeout=timeout)
            except TimeoutError:
                console.print(f"[yellow]Sent {doc_id}, not yet visible in the feed[/yellow]")
                return 0
            console.print(f"[green]Sent {doc_id}[/green]")
            return 0
        finally:
            await client.close()

    ctx.exit(_run(_send()))


@click.command("tail")
@click.option("--timeout", default=15.0, type=float, show_default=True)
@click.pass_context
def tail_cmd(ctx: click.Context, timeout: float):
    """Follow the room feed until interrupted."""

    async def _tail() -> int:
        client = _get_client(ctx)
        try:
            if not await _wait_online(client, timeout):
                return 1
            await _print_feed(client)
        finally:
            await client.close()
        return 0

    try:
        ctx.exit(_run(_tail()))
    except KeyboardInterrupt:
        pass
