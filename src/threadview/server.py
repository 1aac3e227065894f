"""FastMCP server exposing thread transcripts and vetting summaries."""

from __future__ import annotations

import logging
import sys

from mcp.server.fastmcp import FastMCP

from .client import HistoryClient, load_thread
from .config import API_URL
from .render import format_summary, format_transcript

# Logging to stderr only; stdout is the MCP JSON-RPC transport
logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stderr,
)

mcp = FastMCP(
    "threadview",
    instructions=(
        "Read agent threads from the configured agent server. "
        "Use get_transcript to read the displayed conversation of a thread. "
        "Use get_vetting_summary to see the latest vetting questions and answers "
        "exchanged with the matched buyer or seller. "
        "Use check_server to verify the agent server is reachable."
    ),
)


def _get_client() -> HistoryClient:
    return HistoryClient()


def _not_found(thread_id: str) -> str:
    return (
        f"No messages found for thread {thread_id}. "
        f"Check the thread id and that the server at {API_URL} is reachable."
    )


@mcp.tool()
async def get_transcript(thread_id: str) -> str:
    """Retrieve the displayed transcript of an agent thread.

    Control messages, tool results and pure vetting Q&A blocks are left out;
    use get_vetting_summary for the Q&A.

    Args:
        thread_id: The thread id on the agent server
    """
    async with _get_client() as client:
        snapshot, found = await load_thread(client, thread_id)
    if not found:
        return _not_found(thread_id)
    return format_transcript(snapshot)


@mcp.tool()
async def get_vetting_summary(thread_id: str) -> str:
    """Get the latest vetting questions (and answers, once disclosed) for a thread.

    Args:
        thread_id: The thread id on the agent server
    """
    async with _get_client() as client:
        snapshot, found = await load_thread(client, thread_id)
    if not found:
        return _not_found(thread_id)
    return format_summary(snapshot.summary, snapshot.summary_is_live)


@mcp.tool()
async def check_server() -> str:
    """Check whether the agent server is reachable."""
    async with _get_client() as client:
        ok = await client.check_server()
    if ok:
        return f"Agent server at {API_URL} is reachable."
    return f"Failed to connect to the agent server at {API_URL}."
