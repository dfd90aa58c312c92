"""
Shared fakes for memory bridge tests.

FakeTransport / FakeClient stand in for the store subprocess and the MCP
session so the ConnectionManager can be driven without spawning anything.
FakeInvoker records tool calls for service and rename tests.
"""

import asyncio

import pytest

from memory_bridge.mcp_client import ConnectionManager, StoreConfig


class FakeTransport:
    def __init__(self, config: StoreConfig, pid: int):
        self.config = config
        self.pid = pid
        self.onstderr = None
        self.onerror = None
        self.onclose = None
        self.started = False
        self.close_calls = 0

    async def start(self):
        self.started = True

    async def close(self):
        self.close_calls += 1
        self.fire_close()

    def emit_stderr(self, line: str):
        self.onstderr(line)

    def emit_error(self, error: BaseException):
        self.onerror(error)

    def fire_close(self):
        if self.onclose:
            self.onclose()


class FakeClient:
    def __init__(self, gate: asyncio.Event | None = None, error: Exception | None = None):
        self.gate = gate
        self.error = error
        self.connected_to = None
        self.calls = []
        self.responses = {}
        self.close_calls = 0

    async def connect(self, transport):
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        self.connected_to = transport

    async def call_tool(self, name, arguments=None):
        self.calls.append((name, arguments))
        response = self.responses.get(name)
        if isinstance(response, Exception):
            raise response
        return response

    def get_server_version(self):
        return {"name": "fake-memory", "version": "1.0.0"}

    async def close(self):
        self.close_calls += 1


class Harness:
    """Builds a ConnectionManager wired to fakes and records what it spawned."""

    def __init__(self, config: StoreConfig | None = None):
        self.config = config or StoreConfig(command="memory-mcp", args=["--memory-path", "/tmp/memory.json"])
        self.transports: list[FakeTransport] = []
        self.clients: list[FakeClient] = []
        self.gate: asyncio.Event | None = None
        # Errors raised by successive connect attempts; None means success
        self.connect_errors: list[Exception | None] = []
        self.config_error: Exception | None = None

    def load_config(self) -> StoreConfig:
        if self.config_error is not None:
            raise self.config_error
        return self.config

    def make_transport(self, config: StoreConfig) -> FakeTransport:
        transport = FakeTransport(config, pid=1000 + len(self.transports))
        self.transports.append(transport)
        return transport

    def make_client(self) -> FakeClient:
        error = self.connect_errors.pop(0) if self.connect_errors else None
        client = FakeClient(gate=self.gate, error=error)
        self.clients.append(client)
        return client

    def manager(self, **kwargs) -> ConnectionManager:
        return ConnectionManager(
            config_loader=self.load_config,
            transport_factory=self.make_transport,
            client_factory=self.make_client,
            **kwargs,
        )


class FakeInvoker:
    """Records tool calls; answers read_graph with a fixed graph."""

    def __init__(self, graph=None, responses=None, failures=None):
        self.graph = graph if graph is not None else {"entities": [], "relations": []}
        self.responses = responses or {}
        self.failures = failures or {}
        self.calls: list[tuple[str, dict]] = []

    async def call_tool(self, name, arguments=None):
        self.calls.append((name, arguments or {}))
        if name in self.failures:
            raise self.failures[name]
        if name == "read_graph":
            return self.graph
        return self.responses.get(name, {"content": []})

    def tool_names(self) -> list[str]:
        return [name for name, _ in self.calls]


@pytest.fixture
def harness():
    return Harness()


@pytest.fixture
def sample_graph():
    return {
        "entities": [
            {"name": "A", "entityType": "person", "observations": ["o1", 7, "o2"]},
            {"name": "B", "entityType": "person", "observations": []},
            {"name": "D", "type": "place"},
        ],
        "relations": [
            {"from": "A", "to": "B", "relationType": "knows"},
            {"from": "D", "to": "A", "relationType": "hosts"},
            {"from": "B", "to": "D", "relationType": "visits"},
        ],
    }
