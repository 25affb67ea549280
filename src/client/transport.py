"""
Transport layer: a bidirectional message channel to the server.

The session only needs to open it, push text frames into it and close it. Inbound frames and
failures come back through the callbacks handed to the factory.
"""

import asyncio
import logging
from typing import Callable, Optional, Protocol

import aiohttp

from src.core.exceptions import ConnectionFailureError

logger = logging.getLogger(__name__)

OnMessage = Callable[[str], None]
OnFailure = Callable[[Exception], None]


class Transport(Protocol):
    """Fire-and-forget message channel. None of these calls block."""

    def open(self) -> None:
        """Start connecting. Messages sent before the connection is up are queued."""
        ...

    def send(self, payload: str) -> None:
        """Queue a text frame for the server."""
        ...

    def close(self) -> None:
        """Close the channel. Calling it more than once has no further effect."""
        ...


TransportFactory = Callable[[OnMessage, OnFailure], Transport]


class WebSocketTransport:
    """Transport on top of an aiohttp WebSocket client. Must be opened from within a running event loop."""

    def __init__(
        self,
        url: str,
        on_message: OnMessage,
        on_failure: OnFailure,
        connect_timeout_s: float = 10.0,
    ) -> None:
        self.url = url
        self.connect_timeout_s = connect_timeout_s
        self._on_message = on_message
        self._on_failure = on_failure
        self._outbox: asyncio.Queue[Optional[str]] = asyncio.Queue()
        self._task: Optional[asyncio.Task[None]] = None
        self._send_error: Optional[Exception] = None
        self._closed = False

    @property
    def is_closed(self) -> bool:
        return self._closed

    def open(self) -> None:
        if self._task is not None:
            raise ConnectionFailureError("Transport was already opened.")
        self._task = asyncio.get_running_loop().create_task(self._run())
        self._task.add_done_callback(self._report_crash)

    def send(self, payload: str) -> None:
        if self._closed:
            logger.warning("Dropping message on closed transport: %s", payload)
            return
        self._outbox.put_nowait(payload)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        # sentinel: the writer closes the socket once everything queued before it went out
        self._outbox.put_nowait(None)

    async def wait_closed(self) -> None:
        if self._task is not None:
            await self._task

    # -- PRIVATE HELPERS ---
    async def _run(self) -> None:
        timeout = aiohttp.ClientTimeout(total=None, connect=self.connect_timeout_s)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.ws_connect(self.url) as ws:
                    logger.info("Connected to %s", self.url)
                    writer = asyncio.create_task(self._write(ws))
                    try:
                        await self._read(ws)
                    finally:
                        if not writer.done():
                            writer.cancel()
                    if self._send_error is not None:
                        raise self._send_error
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            if not self._closed:
                self._closed = True
                self._on_failure(
                    ConnectionFailureError(f"Connection to {self.url} failed: {e}")
                )
            return

        if not self._closed:
            self._closed = True
            self._on_failure(ConnectionFailureError("Connection closed by server."))

    async def _write(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        while True:
            payload = await self._outbox.get()
            if payload is None:
                await ws.close()
                return
            logger.debug("Sent: %s", payload)
            try:
                await ws.send_str(payload)
            except Exception as e:
                # closing the socket ends the read loop; _run raises the error from there
                self._send_error = e
                await ws.close()
                return

    async def _read(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        async for message in ws:
            if message.type == aiohttp.WSMsgType.TEXT:
                data = message.data
            elif message.type == aiohttp.WSMsgType.BINARY:
                data = message.data.decode("utf-8")
            elif message.type == aiohttp.WSMsgType.ERROR:
                raise aiohttp.ClientError(f"WebSocket error: {ws.exception()!r}")
            else:
                continue
            logger.debug("Received: %s", data)
            self._on_message(data)

    def _report_crash(self, task: "asyncio.Task[None]") -> None:
        """Anything other than a network error escaping the read loop ends the session, loudly."""
        if task.cancelled():
            return
        error = task.exception()
        if error is None:
            return
        logger.error("Transport stopped by an unexpected error", exc_info=error)
        self._closed = True
        self._on_failure(error)
