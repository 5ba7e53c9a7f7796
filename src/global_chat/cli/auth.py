"""CLI: globalchat auth status"""

import click
from rich.console import Console

from global_chat.models.identity import short_id
from global_chat.models.state import Phase

console = Console()


def _get_client(ctx):
    from global_chat.cli.main import _get_client
    return _get_client(ctx)


def _run(coro):
    from global_chat.cli.main import _run
    return _run(coro)


@click.group()
def auth():
    """Authentication commands."""


@auth.command("status")
@click.option("--timeout", default=15.0, type=float, show_default=True)
@click.pass_context
def auth_status(ctx: click.Context, timeout: float):
    """Sign in and show the session phase and identity."""

    async def _status() -> int:
        client = _get_client(ctx)
        try:
            with console.status("Connecting..."):
                await client.start()
                try:
                    state = await client.session.wait_for(Phase.ONLINE, Phase.INIT_ERROR, timeout=timeout)
                except TimeoutError:
                    state = client.state
            if state.is_ready:
                kind = "anonymous" if state.identity.is_anonymous else "token"
                console.print(f"[green]{state.status}[/green] as {short_id(state.identity.id)} ({kind})")
                return 0
            console.print(f"[red]{state.status}[/red]")
            return 1
        finally:
            await client.close()

    ctx.exit(_run(_status()))
