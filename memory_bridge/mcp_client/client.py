"""MCP protocol client for the memory store."""

import asyncio
import logging
from typing import Any

from mcp import ClientSession, types

from ..core.constants import CLIENT_NAME
from ..core.exceptions import ConnectionClosedError
from ..version import __version__

logger = logging.getLogger(__name__)


class McpClient:
    """
    Thin lifecycle wrapper around mcp.ClientSession.

    The session context is owned by a background task, so connect() may be
    called from one request and call_tool() from any other. The task ends
    when close() is called or the transport closes.
    """

    def __init__(self, name: str = CLIENT_NAME, version: str = __version__):
        self.client_info = types.Implementation(name=name, version=version)
        self._session: ClientSession | None = None
        self._server_info: types.Implementation | None = None
        self._runner: asyncio.Task | None = None
        self._stop = asyncio.Event()

    @property
    def connected(self) -> bool:
        return self._session is not None

    async def connect(self, transport) -> None:
        """Open a session on the started transport and run the initialize handshake."""
        if self._runner is not None:
            raise RuntimeError("McpClient already connected")

        ready = asyncio.get_running_loop().create_future()
        self._runner = asyncio.create_task(self._run(transport, ready))
        try:
            await ready
        except asyncio.CancelledError:
            self._runner.cancel()
            raise

    async def _run(self, transport, ready: asyncio.Future):
        try:
            async with ClientSession(
                transport.read_stream,
                transport.write_stream,
                client_info=self.client_info,
            ) as session:
                result = await session.initialize()
                self._session = session
                self._server_info = result.serverInfo
                ready.set_result(None)
                await self._wait_for_shutdown(transport)
        except Exception as e:
            if not ready.done():
                ready.set_exception(e)
            else:
                logger.warning(f"Memory store session ended with error: {e}")
        finally:
            self._session = None
            if not ready.done():
                ready.set_exception(ConnectionClosedError("Memory store closed during handshake"))

    async def _wait_for_shutdown(self, transport):
        waiters = [
            asyncio.ensure_future(self._stop.wait()),
            asyncio.ensure_future(transport.wait_closed()),
        ]
        try:
            await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for waiter in waiters:
                waiter.cancel()

    async def call_tool(self, name: str, arguments: dict[str, Any] | None = None) -> types.CallToolResult:
        session = self._session
        if session is None:
            raise ConnectionClosedError("Memory store client is not connected")
        return await session.call_tool(name, arguments or {})

    def get_server_version(self) -> dict | None:
        """Server name/version advertised during the handshake."""
        if self._server_info is None:
            return None
        return self._server_info.model_dump(exclude_none=True)

    async def close(self):
        """End the session. Safe to call more than once."""
        self._stop.set()
        if self._runner is not None:
            if self._session is None:
                # Still handshaking; the session task would not see the stop event
                self._runner.cancel()
            await asyncio.gather(self._runner, return_exceptions=True)
