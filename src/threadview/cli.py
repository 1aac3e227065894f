"""CLI interface for threadview."""

from __future__ import annotations

import asyncio
import json
import logging
import shutil
import sys

import click

from . import __version__
from .config import API_URL, POLL_INTERVAL


@click.group()
@click.version_option(version=__version__, prog_name="threadview")
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr")
def cli(verbose: bool):
    """threadview: follow an agent thread and its vetting Q&A.

    Reads thread history from the agent server configured with
    THREADVIEW_API_URL and shows the reconciled transcript, with vetting
    questions and answers collected into a separate summary.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


@cli.command()
@click.argument("thread_id")
@click.option("--summary-only", is_flag=True, help="Only print the vetting Q&A summary")
def show(thread_id: str, summary_only: bool):
    """Print the transcript and vetting summary of a thread.

    Example:
        threadview show 4f1c9a2e-0b7d-4c55-9d8e-2a1b3c4d5e6f
    """
    from .client import HistoryClient, load_thread
    from .render import format_summary, format_transcript

    async def _load():
        async with HistoryClient() as client:
            return await load_thread(client, thread_id)

    snapshot, found = asyncio.run(_load())
    if not found:
        raise click.ClickException(
            f"No messages found for thread {thread_id} at {API_URL}."
        )

    if not summary_only:
        click.echo(format_transcript(snapshot))
        click.echo()
    click.echo(click.style("Vetting summary", bold=True))
    click.echo(format_summary(snapshot.summary, snapshot.summary_is_live))


@cli.command()
@click.argument("thread_id")
@click.option("--interval", type=float, default=POLL_INTERVAL, show_default=True, help="Seconds between polls")
@click.option("--max-polls", type=int, default=None, hidden=True)
def watch(thread_id: str, interval: float, max_polls: int | None):
    """Poll a thread and print new messages as they arrive."""
    from .client import HistoryClient, HistoryPoller
    from .reconciler import SessionReconciler
    from .render import format_summary

    reconciler = SessionReconciler()
    shown = {"count": 0, "summary": None}

    def _print(snapshot):
        for msg in snapshot.transcript[shown["count"]:]:
            label = "You" if msg.role == "human" else "Agent"
            click.echo(f"{click.style(label, bold=True)}: {msg.text or '[attachment]'}")
        shown["count"] = len(snapshot.transcript)

        if snapshot.summary is not None and snapshot.summary != shown["summary"]:
            shown["summary"] = snapshot.summary
            click.echo(click.style("Vetting summary updated", fg="green", bold=True))
            click.echo(format_summary(snapshot.summary, snapshot.summary_is_live))

    reconciler.subscribe(_print)
    reconciler.switch_session(thread_id)

    async def _run():
        async with HistoryClient() as client:
            poller = HistoryPoller(client, reconciler, interval=interval)
            await poller.run(max_polls=max_polls)

    click.echo(f"Watching thread {thread_id} (Ctrl+C to stop)...")
    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        click.echo("Stopped.")


@cli.command()
def check():
    """Check that the agent server is reachable."""
    from .client import HistoryClient

    async def _check():
        async with HistoryClient() as client:
            return await client.check_server()

    if not asyncio.run(_check()):
        raise click.ClickException(
            f"Failed to connect to server at {API_URL}. "
            "Make sure it is running and THREADVIEW_API_KEY is set if it requires one."
        )
    click.echo(f"Server at {API_URL} is reachable.")


@cli.command()
def serve():
    """Start the MCP server (stdio transport)."""
    from .server import mcp

    mcp.run(transport="stdio")


@cli.command()
def config():
    """Print the MCP configuration snippet for Claude Desktop."""
    threadview_path = shutil.which("threadview")
    command, args = (threadview_path, ["serve"]) if threadview_path else ("uvx", ["threadview", "serve"])

    desktop_config = {
        "mcpServers": {
            "threadview": {
                "command": command,
                "args": args,
                "env": {"THREADVIEW_API_URL": API_URL},
            }
        }
    }

    click.echo()
    click.echo(click.style("Claude Desktop", bold=True))
    click.echo("Add this to your Claude Desktop config file:")
    click.echo()
    click.echo(json.dumps(desktop_config, indent=2))
    click.echo()
