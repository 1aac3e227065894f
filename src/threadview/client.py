"""History polling against the agent server: HTTP client and poll loop."""

from __future__ import annotations

import asyncio
import logging
from urllib.parse import quote

import httpx

from .config import API_KEY, API_URL, HISTORY_LIMIT, HTTP_TIMEOUT, INITIAL_POLL_DELAY, POLL_INTERVAL
from .models import Message, ThreadSnapshot
from .parser import parse_history
from .reconciler import SessionReconciler

logger = logging.getLogger(__name__)


class HistoryClient:
    """Thin async client for the thread history and health endpoints."""

    def __init__(
        self,
        api_url: str = API_URL,
        api_key: str | None = API_KEY,
        timeout: float = HTTP_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_url = api_url.rstrip("/")
        headers = {"X-Api-Key": api_key} if api_key else {}
        self._http = httpx.AsyncClient(
            base_url=self.api_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> HistoryClient:
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        await self._http.aclose()

    async def check_server(self) -> bool:
        """Return True if the server answers ``GET /info`` successfully."""
        try:
            resp = await self._http.get("/info")
        except httpx.HTTPError as exc:
            logger.warning("Server check failed for %s: %s", self.api_url, exc)
            return False
        return resp.is_success

    async def fetch_history(self, thread_id: str, limit: int = HISTORY_LIMIT) -> list[Message] | None:
        """Fetch the newest message list for a thread.

        Returns None on any transport, status or decoding failure, or when the
        history holds no messages.
        """
        try:
            path = f"/threads/{quote(thread_id, safe='')}/history"
            resp = await self._http.post(path, json={"limit": limit})
        except httpx.HTTPError as exc:
            logger.warning("History poll for thread %s failed: %s", thread_id, exc)
            return None

        if not resp.is_success:
            logger.warning(
                "History poll for thread %s returned HTTP %s", thread_id, resp.status_code
            )
            return None

        try:
            payload = resp.json()
        except ValueError:
            logger.warning("History poll for thread %s returned invalid JSON", thread_id)
            return None

        return parse_history(payload)


class HistoryPoller:
    """Periodically polls thread history into a SessionReconciler.

    Ticks are skipped while the stream is active. A response that resolves
    after the session changed is dropped by the reconciler.
    """

    def __init__(
        self,
        client: HistoryClient,
        reconciler: SessionReconciler,
        interval: float = POLL_INTERVAL,
        initial_delay: float = INITIAL_POLL_DELAY,
        limit: int = HISTORY_LIMIT,
    ):
        self.client = client
        self.reconciler = reconciler
        self.interval = interval
        self.initial_delay = initial_delay
        self.limit = limit

    async def poll_once(self) -> bool:
        """Run a single poll. Returns True if the reconciler took the result."""
        ticket = self.reconciler.begin_poll()
        if ticket is None:
            return False

        messages = await self.client.fetch_history(ticket.key, limit=self.limit)
        return self.reconciler.apply_poll(ticket, messages)

    async def run(self, max_polls: int | None = None):
        """Poll until cancelled, or until ``max_polls`` ticks have elapsed."""
        await asyncio.sleep(self.initial_delay)
        ticks = 0
        while max_polls is None or ticks < max_polls:
            try:
                await self.poll_once()
            except Exception:
                logger.warning("History poll tick failed", exc_info=True)
            ticks += 1
            if max_polls is not None and ticks >= max_polls:
                break
            await asyncio.sleep(self.interval)


async def load_thread(client: HistoryClient, thread_id: str) -> tuple[ThreadSnapshot, bool]:
    """Poll a thread once and return its snapshot and whether any history was found."""
    reconciler = SessionReconciler()
    reconciler.switch_session(thread_id)
    found = await HistoryPoller(client, reconciler).poll_once()
    return reconciler.snapshot(), found
