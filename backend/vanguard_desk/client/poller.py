"""Polling client for chat threads.

There is no push channel: a client keeps a thread view current by re-fetching
the whole thread every few seconds. ``ThreadPoller`` does that and only yields
when the message list actually changed (a new message or a recall).
"""

import asyncio
import logging
from typing import Any, AsyncIterator

import httpx

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 3.0

# Statuses that will not fix themselves by polling again
FATAL_STATUSES = {401, 403, 404}


class ThreadClient:
    """Thin async wrapper over the /api/contact thread endpoints."""

    def __init__(
        self,
        base_url: str,
        token: str,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/") + "/api/contact",
            headers={"Authorization": f"Bearer {token}"},
            transport=transport,
            timeout=timeout,
        )

    async def __aenter__(self) -> "ThreadClient":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        resp = await self._http.request(method, path, **kwargs)
        resp.raise_for_status()
        return resp.json()

    async def list_threads(self) -> list[dict[str, Any]]:
        return await self._request("GET", "/threads")

    async def open_thread(self, subject: str = "") -> dict[str, Any]:
        return await self._request("POST", "/threads", json={"subject": subject})

    async def get_thread(self, thread_id: int) -> dict[str, Any]:
        return await self._request("GET", f"/threads/{thread_id}")

    async def send_text(self, thread_id: int, text: str) -> list[dict[str, Any]]:
        data = await self._request(
            "POST", f"/threads/{thread_id}/messages", json={"type": "text", "text": text}
        )
        return data["messages"]

    async def send_media(self, thread_id: int, media_type: str, url: str) -> list[dict[str, Any]]:
        """Post an already-uploaded image, video or audio clip by URL."""
        data = await self._request(
            "POST", f"/threads/{thread_id}/messages", json={"type": media_type, "url": url}
        )
        return data["messages"]

    async def recall(self, thread_id: int, message_id: str) -> list[dict[str, Any]]:
        data = await self._request("PUT", f"/threads/{thread_id}/messages/{message_id}/recall")
        return data["messages"]

    async def mark_read(self, thread_id: int) -> None:
        await self._request("PUT", f"/threads/{thread_id}/read")


def _fingerprint(thread: dict[str, Any]) -> tuple:
    return tuple((m["id"], m["recalled"]) for m in thread.get("messages", []))


class ThreadPoller:
    def __init__(
        self,
        client: ThreadClient,
        thread_id: int,
        interval: float = POLL_INTERVAL_SECONDS,
    ) -> None:
        self._client = client
        self._thread_id = thread_id
        self._interval = interval
        self._last: tuple | None = None
        self._stopped = asyncio.Event()
        self.connected = True

    def stop(self) -> None:
        self._stopped.set()

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    async def poll_once(self) -> dict[str, Any] | None:
        """Fetch the thread; return it if it changed since the last poll, else None."""
        try:
            thread = await self._client.get_thread(self._thread_id)
        except httpx.HTTPStatusError as e:
            if e.response.status_code in FATAL_STATUSES:
                raise
            logger.debug(f"Poll of thread {self._thread_id} failed: {e}")
            self.connected = False
            return None
        except httpx.HTTPError as e:
            logger.debug(f"Poll of thread {self._thread_id} failed: {e}")
            self.connected = False
            return None

        self.connected = True
        fingerprint = _fingerprint(thread)
        if fingerprint == self._last:
            return None
        self._last = fingerprint
        return thread

    async def __aiter__(self) -> AsyncIterator[dict[str, Any]]:
        while not self.stopped:
            thread = await self.poll_once()
            if thread is not None:
                yield thread
            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass
