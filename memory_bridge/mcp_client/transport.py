"""Stdio transport: spawns the memory store and pumps its byte streams."""

import asyncio
import logging
import re
from typing import Any, Callable

import anyio
from anyio.abc import Process
from anyio.streams.text import TextReceiveStream
from mcp import types
from mcp.client.stdio import get_default_environment
from mcp.shared.message import SessionMessage

from ..core.constants import CLOSE_TIMEOUT_SECONDS, STDERR_MAX_LINE_CHARS
from .config import StoreConfig

logger = logging.getLogger(__name__)

_LINE_BREAK = re.compile(r"\r?\n")


class StdioTransport:
    """
    Newline-delimited JSON-RPC over a subprocess's stdin/stdout.

    After start(), read_stream yields SessionMessage (or Exception for
    unparseable lines) and write_stream accepts SessionMessage. Stderr is
    split into lines and handed to onstderr. onerror receives pump failures;
    onclose fires once when the process streams are gone, whatever the cause.
    """

    def __init__(
        self,
        command: str,
        args: list[str] | None = None,
        cwd: str | None = None,
        env: dict[str, str] | None = None,
    ):
        self.command = command
        self.args = list(args or [])
        self.cwd = cwd
        self.env = env

        self.onstderr: Callable[[str], None] | None = None
        self.onerror: Callable[[BaseException], None] | None = None
        self.onclose: Callable[[], None] | None = None

        self.read_stream: Any = None
        self.write_stream: Any = None

        self._process: Process | None = None
        self._pump: asyncio.Task | None = None
        self._closed = asyncio.Event()

    @classmethod
    def from_config(cls, config: StoreConfig) -> "StdioTransport":
        return cls(config.command, config.args, config.cwd)

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process else None

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    async def wait_closed(self):
        await self._closed.wait()

    async def start(self):
        """Spawn the subprocess and start pumping its streams."""
        if self._process is not None:
            raise RuntimeError("StdioTransport already started")

        env = get_default_environment()
        if self.env:
            env.update(self.env)

        self._process = await anyio.open_process(
            [self.command, *self.args],
            cwd=self.cwd,
            env=env,
        )
        logger.info(f"Spawned memory store '{self.command}' (pid {self._process.pid})")

        read_writer, self.read_stream = anyio.create_memory_object_stream(0)
        self.write_stream, write_reader = anyio.create_memory_object_stream(0)
        self._pump = asyncio.create_task(self._run(read_writer, write_reader))

    async def close(self):
        """Terminate the subprocess and wait for the pumps to wind down."""
        if self._pump is None or self._process is None:
            return

        if self._process.returncode is None:
            try:
                self._process.terminate()
            except ProcessLookupError:
                pass

        try:
            await asyncio.wait_for(asyncio.shield(self._pump), CLOSE_TIMEOUT_SECONDS * 2)
        except asyncio.TimeoutError:
            logger.warning(f"Memory store pid {self.pid} did not exit, killing it")
            self._pump.cancel()
            await asyncio.gather(self._pump, return_exceptions=True)

    # ========================================================================
    # Pumps
    # ========================================================================

    async def _run(self, read_writer, write_reader):
        stderr_done = anyio.Event()
        try:
            async with anyio.create_task_group() as tg:
                tg.start_soon(self._pump_stderr, stderr_done)
                tg.start_soon(self._pump_stdin, write_reader)
                await self._pump_stdout(read_writer)
                # Let the last stderr lines drain before tearing down
                with anyio.move_on_after(CLOSE_TIMEOUT_SECONDS):
                    await stderr_done.wait()
                tg.cancel_scope.cancel()
        except Exception as e:
            self._report_error(e)
        finally:
            await self._reap()
            self._closed.set()
            logger.info(f"Memory store pid {self.pid} closed (exit code {self._process.returncode})")
            if self.onclose:
                self.onclose()

    async def _pump_stdout(self, read_writer):
        async with read_writer:
            buffer = ""
            async for chunk in TextReceiveStream(self._process.stdout, errors="replace"):
                lines = (buffer + chunk).split("\n")
                buffer = lines.pop()
                for line in lines:
                    if not line.strip():
                        continue
                    try:
                        message = types.JSONRPCMessage.model_validate_json(line)
                    except Exception as e:
                        self._report_error(e)
                        await read_writer.send(e)
                        continue
                    await read_writer.send(SessionMessage(message))

    async def _pump_stdin(self, write_reader):
        async with write_reader:
            async for session_message in write_reader:
                payload = session_message.message.model_dump_json(by_alias=True, exclude_none=True)
                await self._process.stdin.send((payload + "\n").encode())

    async def _pump_stderr(self, done):
        buffer = ""
        try:
            async for chunk in TextReceiveStream(self._process.stderr, errors="replace"):
                lines = _LINE_BREAK.split(buffer + chunk)
                buffer = lines.pop()
                for line in lines:
                    self._emit_stderr(line)
                # Overlong partial lines are emitted in fixed-size pieces
                while len(buffer) >= STDERR_MAX_LINE_CHARS:
                    self._emit_stderr(buffer[:STDERR_MAX_LINE_CHARS])
                    buffer = buffer[STDERR_MAX_LINE_CHARS:]
            self._emit_stderr(buffer)
        finally:
            done.set()

    def _emit_stderr(self, line: str):
        if not line:
            return
        logger.debug(f"[store stderr] {line}")
        if self.onstderr:
            self.onstderr(line)

    def _report_error(self, error: BaseException):
        logger.warning(f"Memory store transport error: {error}")
        if self.onerror:
            self.onerror(error)

    async def _reap(self):
        """Wait briefly for the process to exit, then kill it."""
        with anyio.move_on_after(CLOSE_TIMEOUT_SECONDS, shield=True):
            await self._process.wait()
        if self._process.returncode is None:
            try:
                self._process.kill()
            except ProcessLookupError:
                pass
            with anyio.CancelScope(shield=True):
                await self._process.wait()
