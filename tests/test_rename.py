"""Tests for the entity rename workflow."""

import pytest

from memory_bridge.api import RenameOrchestrator, StepRunner, relink_relations
from memory_bridge.core import (
    EntityExistsError,
    EntityNotFoundError,
    InvalidRequestError,
    Relation,
    StepFailedError,
    ToolCallError,
)

from .conftest import FakeInvoker


@pytest.mark.asyncio
@pytest.mark.parametrize("from_name,to_name", [
    (None, "B"),
    ("A", None),
    ("   ", "B"),
    ("A", 42),
])
async def test_missing_names_rejected_without_calls(from_name, to_name):
    invoker = FakeInvoker()

    with pytest.raises(InvalidRequestError, match="fromName"):
        await RenameOrchestrator(invoker).rename(from_name, to_name)
    assert invoker.calls == []


@pytest.mark.asyncio
async def test_same_name_rejected_without_calls():
    invoker = FakeInvoker()

    with pytest.raises(InvalidRequestError, match="must be different"):
        await RenameOrchestrator(invoker).rename("A", "A")
    assert invoker.calls == []


@pytest.mark.asyncio
async def test_unknown_source_not_found(sample_graph):
    invoker = FakeInvoker(graph=sample_graph)

    with pytest.raises(EntityNotFoundError, match="Entity not found: Z"):
        await RenameOrchestrator(invoker).rename("Z", "C")
    assert invoker.tool_names() == ["read_graph"]


@pytest.mark.asyncio
async def test_existing_target_conflicts_without_mutation(sample_graph):
    invoker = FakeInvoker(graph=sample_graph)

    with pytest.raises(EntityExistsError, match="Target entity already exists: B"):
        await RenameOrchestrator(invoker).rename("A", "B")
    assert invoker.tool_names() == ["read_graph"]


@pytest.mark.asyncio
async def test_rename_call_sequence(sample_graph):
    invoker = FakeInvoker(graph=sample_graph)

    result = await RenameOrchestrator(invoker).rename("A", "C")

    assert invoker.calls == [
        ("read_graph", {}),
        ("create_entities", {"entities": [{"name": "C", "entityType": "person", "observations": ["o1", "o2"]}]}),
        ("create_relations", {"relations": [
            {"from": "C", "to": "B", "relationType": "knows"},
            {"from": "D", "to": "C", "relationType": "hosts"},
        ]}),
        ("delete_entities", {"entityNames": ["A"]}),
    ]
    assert result.created_relations == 2
    assert result.entity_type == "person"


@pytest.mark.asyncio
async def test_type_override(sample_graph):
    invoker = FakeInvoker(graph=sample_graph)

    result = await RenameOrchestrator(invoker).rename("A", "C", "robot")

    created = invoker.calls[1][1]["entities"][0]
    assert created["entityType"] == "robot"
    assert result.entity_type == "robot"


@pytest.mark.asyncio
async def test_untyped_entity_without_relations(sample_graph):
    sample_graph["entities"].append({"name": "Loner"})
    invoker = FakeInvoker(graph=sample_graph)

    result = await RenameOrchestrator(invoker).rename("Loner", "Hermit")

    assert invoker.calls == [
        ("read_graph", {}),
        ("create_entities", {"entities": [{"name": "Hermit", "observations": []}]}),
        ("delete_entities", {"entityNames": ["Loner"]}),
    ]
    assert result.created_relations == 0
    assert result.entity_type is None


@pytest.mark.asyncio
async def test_rename_works_on_nodes_edges_graph():
    graph = {
        "nodes": [{"id": "A", "type": "person"}, {"id": "B"}],
        "edges": [{"source": "B", "target": "A", "type": "likes"}],
    }
    invoker = FakeInvoker(graph=graph)

    await RenameOrchestrator(invoker).rename("A", "C")

    assert invoker.calls[2] == (
        "create_relations",
        {"relations": [{"from": "B", "to": "C", "relationType": "likes"}]},
    )


@pytest.mark.asyncio
async def test_relink_failure_reports_stage_and_skips_delete(sample_graph):
    invoker = FakeInvoker(
        graph=sample_graph,
        failures={"create_relations": ToolCallError("create_relations", "disk full")},
    )

    with pytest.raises(StepFailedError) as exc_info:
        await RenameOrchestrator(invoker).rename("A", "C")

    error = exc_info.value
    assert error.stage == "create_relations"
    assert error.completed == ["create_entity"]
    assert isinstance(error.cause, ToolCallError)
    assert "delete_entities" not in invoker.tool_names()


@pytest.mark.asyncio
async def test_delete_failure_reports_both_completed_stages(sample_graph):
    invoker = FakeInvoker(graph=sample_graph, failures={"delete_entities": RuntimeError("gone")})

    with pytest.raises(StepFailedError) as exc_info:
        await RenameOrchestrator(invoker).rename("A", "C")

    assert exc_info.value.stage == "delete_entity"
    assert exc_info.value.completed == ["create_entity", "create_relations"]


@pytest.mark.asyncio
async def test_read_failure_propagates_unwrapped(sample_graph):
    invoker = FakeInvoker(failures={"read_graph": RuntimeError("store down")})

    with pytest.raises(RuntimeError, match="store down"):
        await RenameOrchestrator(invoker).rename("A", "C")


def test_relink_relations_self_loop():
    relations = [
        Relation("A", "A", "self"),
        Relation("X", "Y", "other"),
    ]

    assert relink_relations(relations, "A", "C") == [{"from": "C", "to": "C", "relationType": "self"}]


def test_relink_relations_drops_extra_fields():
    relations = [Relation("A", "B", "knows", extra={"weight": 3})]

    assert relink_relations(relations, "A", "C") == [{"from": "C", "to": "B", "relationType": "knows"}]


@pytest.mark.asyncio
async def test_step_runner_tracks_completed():
    async def ok():
        return "done"

    async def boom():
        raise ValueError("nope")

    steps = StepRunner("demo")

    assert await steps.run("first", ok()) == "done"
    with pytest.raises(StepFailedError) as exc_info:
        await steps.run("second", boom())

    assert steps.completed == ["first"]
    assert exc_info.value.operation == "demo"
    assert str(exc_info.value) == "demo failed at stage 'second': nope"


@pytest.mark.asyncio
async def test_rename_single_relation_in_order():
    invoker = FakeInvoker(graph={
        "entities": [{"name": "A", "entityType": "person", "observations": ["o1"]}, {"name": "B"}],
        "relations": [{"from": "A", "to": "B", "relationType": "knows"}],
    })

    await RenameOrchestrator(invoker).rename("A", "C")

    assert invoker.calls[1:] == [
        ("create_entities", {"entities": [{"name": "C", "entityType": "person", "observations": ["o1"]}]}),
        ("create_relations", {"relations": [{"from": "C", "to": "B", "relationType": "knows"}]}),
        ("delete_entities", {"entityNames": ["A"]}),
    ]
