"""Entity rename as an ordered create -> relink -> delete workflow."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable

from ..core import (
    TOOL_CREATE_ENTITIES,
    TOOL_CREATE_RELATIONS,
    TOOL_DELETE_ENTITIES,
    TOOL_READ_GRAPH,
    EntityExistsError,
    EntityNotFoundError,
    InvalidRequestError,
    Relation,
    StepFailedError,
    as_string,
    normalize_graph,
)

logger = logging.getLogger(__name__)


class RenameStage(str, Enum):
    CREATE_ENTITY = "create_entity"
    CREATE_RELATIONS = "create_relations"
    DELETE_ENTITY = "delete_entity"


@dataclass
class RenameResult:
    from_name: str
    to_name: str
    entity_type: str | None
    created_relations: int


class StepRunner:
    """
    Runs the steps of a compound store operation in order.

    The store has no transactions: a failing step raises StepFailedError
    naming the stage and the stages already applied. Nothing is undone.
    """

    def __init__(self, operation: str):
        self.operation = operation
        self.completed: list[str] = []

    async def run(self, stage: str, step: Awaitable[Any]) -> Any:
        try:
            result = await step
        except Exception as e:
            logger.error(
                f"{self.operation} failed at '{stage}' after {self.completed or 'no steps'}: {e}"
            )
            raise StepFailedError(self.operation, stage, self.completed, e) from e
        self.completed.append(stage)
        return result


def relink_relations(relations: list[Relation], from_name: str, to_name: str) -> list[dict]:
    """Rewrite every relation touching from_name so it points at to_name instead."""
    relinked = []
    for relation in relations:
        if not relation.touches(from_name):
            continue
        relinked.append({
            "from": to_name if relation.from_name == from_name else relation.from_name,
            "to": to_name if relation.to_name == from_name else relation.to_name,
            "relationType": relation.relation_type,
        })
    return relinked


class RenameOrchestrator:
    """Renames an entity across the whole graph through store tool calls."""

    def __init__(self, invoker):
        self.invoker = invoker

    async def rename(self, from_name: Any, to_name: Any, to_type: Any = None) -> RenameResult:
        from_name = as_string(from_name)
        to_name = as_string(to_name)
        to_type = as_string(to_type)

        if not from_name or not to_name:
            raise InvalidRequestError(
                'Body must be { "fromName": string, "toName": string, "toType"?: string }.'
            )
        if from_name == to_name:
            raise InvalidRequestError("fromName and toName must be different.")

        graph = normalize_graph(await self.invoker.call_tool(TOOL_READ_GRAPH))

        source = graph.find_entity(from_name)
        if source is None:
            raise EntityNotFoundError(from_name)
        if graph.find_entity(to_name) is not None:
            raise EntityExistsError(to_name)

        entity_type = to_type or source.entity_type
        new_entity: dict[str, Any] = {"name": to_name}
        if entity_type is not None:
            new_entity["entityType"] = entity_type
        new_entity["observations"] = list(source.observations or [])

        relinked = relink_relations(graph.relations, from_name, to_name)

        logger.info(f"Renaming entity '{from_name}' -> '{to_name}' ({len(relinked)} relations)")
        steps = StepRunner("rename")

        await steps.run(
            RenameStage.CREATE_ENTITY.value,
            self.invoker.call_tool(TOOL_CREATE_ENTITIES, {"entities": [new_entity]}),
        )
        if relinked:
            await steps.run(
                RenameStage.CREATE_RELATIONS.value,
                self.invoker.call_tool(TOOL_CREATE_RELATIONS, {"relations": relinked}),
            )
        await steps.run(
            RenameStage.DELETE_ENTITY.value,
            self.invoker.call_tool(TOOL_DELETE_ENTITIES, {"entityNames": [from_name]}),
        )

        return RenameResult(
            from_name=from_name,
            to_name=to_name,
            entity_type=entity_type,
            created_relations=len(relinked),
        )
