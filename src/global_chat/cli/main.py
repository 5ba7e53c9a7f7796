"""
Global Chat CLI — `globalchat` command.

Commands:
  globalchat chat            Interactive room REPL
  globalchat send <message>  One-shot message
  globalchat tail            Follow the room feed
  globalchat auth status     Sign in and show the session identity
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional

try:
    import click
    from rich.console import Console
    from rich.logging import RichHandler
except ImportError:
    raise SystemExit("CLI requires extras: pip install global-chat[cli]")

from global_chat import __version__
from global_chat.client import AsyncGlobalChat
from global_chat.config import CONFIG_FILE, load_config

console = Console()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(name)s: %(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _get_client(ctx: click.Context) -> AsyncGlobalChat:
    opts = ctx.find_root().obj
    config = load_config(opts["config_path"])
    if opts["local"]:
        return AsyncGlobalChat.local(config)
    return AsyncGlobalChat(config)


def _run(coro):
    return asyncio.run(coro)


@click.group()
@click.version_option(__version__)
@click.option("--config", "config_path", type=click.Path(path_type=Path), default=CONFIG_FILE,
              show_default=True, help="JSON config file")
@click.option("--local", is_flag=True, help="Run against an in-process room (no backend)")
@click.option("-v", "--verbose", is_flag=True)
@click.pass_context
def main(ctx: click.Context, config_path: Optional[Path], local: bool, verbose: bool):
    """Global Chat CLI: one public room, anonymous identities."""
    _setup_logging(verbose)
    ctx.obj = {"config_path": config_path, "local": local}


# Register subcommands from separate modules
from global_chat.cli.auth import auth
from global_chat.cli.chat import chat_cmd, send_cmd, tail_cmd

main.add_command(auth)
main.add_command(chat_cmd)
main.add_command(send_cmd)
main.add_command(tail_cmd)


if __name__ == "__main__":
    main()
