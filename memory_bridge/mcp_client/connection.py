"""Lifecycle management for the single memory store connection."""

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable

from ..core.constants import STDERR_TAIL_LINES
from ..core.utils import error_message
from .client import McpClient
from .config import StoreConfig
from .transport import StdioTransport

logger = logging.getLogger(__name__)


@dataclass
class ConnectionStatus:
    """Read-only snapshot of a live connection."""
    pid: int | None
    connected_at: float
    stderr_tail: list[str]
    last_error: str | None
    server_version: Any

    def to_dict(self) -> dict:
        return {
            "pid": self.pid,
            "connectedAt": self.connected_at,
            "stderrTail": self.stderr_tail,
            "lastError": self.last_error,
            "serverVersion": self.server_version,
        }


@dataclass
class Connection:
    """Established link (process + handshake) to one memory store instance."""
    client: Any
    transport: Any
    connected_at: float = 0.0
    stderr_tail: deque = field(default_factory=lambda: deque(maxlen=STDERR_TAIL_LINES))
    last_error: str | None = None

    @property
    def pid(self) -> int | None:
        return self.transport.pid

    def status(self) -> ConnectionStatus:
        return ConnectionStatus(
            pid=self.pid,
            connected_at=self.connected_at,
            stderr_tail=list(self.stderr_tail),
            last_error=self.last_error,
            server_version=self.client.get_server_version(),
        )


class ConnectionManager:
    """
    Owns zero or one live connection to the memory store.

    Concurrent acquire() calls made while disconnected share one connect
    attempt: one subprocess is spawned and every waiter gets the same
    Connection or the same exception. When the process or transport closes,
    the connection is dropped and the next acquire() spawns a fresh one.
    """

    def __init__(
        self,
        config_loader: Callable[[], StoreConfig] = StoreConfig.from_env,
        transport_factory: Callable[[StoreConfig], Any] = StdioTransport.from_config,
        client_factory: Callable[[], Any] = McpClient,
        stderr_tail_lines: int = STDERR_TAIL_LINES,
    ):
        self.config_loader = config_loader
        self.transport_factory = transport_factory
        self.client_factory = client_factory
        self.stderr_tail_lines = stderr_tail_lines

        self._connection: Connection | None = None
        self._connecting: asyncio.Future | None = None

    @property
    def connected(self) -> bool:
        return self._connection is not None

    async def acquire(self) -> Connection:
        """Return the live connection, joining or starting a connect attempt if needed."""
        if self._connection is not None:
            return self._connection

        if self._connecting is None:
            self._connecting = asyncio.ensure_future(self._connect())
            self._connecting.add_done_callback(self._retrieve_outcome)

        # Shield so a cancelled caller does not cancel the shared attempt
        return await asyncio.shield(self._connecting)

    def peek(self) -> ConnectionStatus | None:
        """Snapshot of the live connection, or None. No side effects."""
        if self._connection is None:
            return None
        return self._connection.status()

    def reset(self):
        """Forget the current connection and any pending attempt without tearing them down."""
        if self._connection is not None or self._connecting is not None:
            logger.info("Resetting memory store connection")
        self._connecting = None
        self._connection = None

    async def shutdown(self):
        """Close the live connection and abandon any pending attempt."""
        connection, pending = self._connection, self._connecting
        self._connecting = None
        self._connection = None

        if pending is not None and not pending.done():
            pending.cancel()
            await asyncio.gather(pending, return_exceptions=True)
        if connection is not None:
            logger.info(f"Shutting down memory store connection (pid {connection.pid})")
            await self._discard(connection)

    # ========================================================================
    # Connect attempt
    # ========================================================================

    async def _connect(self) -> Connection:
        attempt = asyncio.current_task()
        connection: Connection | None = None

        try:
            config = self.config_loader()
            connection = Connection(
                client=self.client_factory(),
                transport=self.transport_factory(config),
                stderr_tail=deque(maxlen=self.stderr_tail_lines),
            )
            self._attach_callbacks(connection, attempt)

            logger.info(f"Connecting to memory store: {config.command} {' '.join(config.args)}".rstrip())
            await connection.transport.start()
            await connection.client.connect(connection.transport)
        except (Exception, asyncio.CancelledError) as e:
            logger.error(f"Memory store connect failed: {error_message(e)}")
            if self._connecting is attempt:
                self._connecting = None
                self._connection = None
            if connection is not None:
                connection.last_error = error_message(e)
                await self._discard(connection)
            raise

        connection.connected_at = time.time()
        if self._connecting is attempt:
            self._connection = connection
            self._connecting = None
        logger.info(
            f"Connected to memory store (pid {connection.pid}, "
            f"server {connection.client.get_server_version()})"
        )
        return connection

    def _attach_callbacks(self, connection: Connection, attempt: asyncio.Future | None):
        transport = connection.transport

        def on_stderr(line: str):
            connection.stderr_tail.append(line)

        def on_error(error: BaseException):
            connection.last_error = error_message(error)

        def on_close():
            # Only clear state that still belongs to this attempt
            if self._connection is connection or self._connecting is attempt:
                logger.info(f"Memory store connection closed (pid {connection.pid}), will reconnect on demand")
                self._connection = None
                self._connecting = None

        transport.onstderr = on_stderr
        transport.onerror = on_error
        transport.onclose = on_close

    async def _discard(self, connection: Connection):
        """Best-effort teardown of a connection that is no longer published."""
        for closeable in (connection.client, connection.transport):
            try:
                await closeable.close()
            except Exception as e:
                logger.warning(f"Error closing memory store {type(closeable).__name__}: {e}")

    @staticmethod
    def _retrieve_outcome(future: asyncio.Future):
        # Marks the exception as retrieved when every waiter was cancelled
        if not future.cancelled():
            future.exception()
