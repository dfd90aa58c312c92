"""Knowledge graph operations forwarded to the memory store."""

import logging
from typing import Any

from ..core import (
    TOOL_ADD_OBSERVATIONS,
    TOOL_CREATE_ENTITIES,
    TOOL_CREATE_RELATIONS,
    TOOL_DELETE_ENTITIES,
    TOOL_DELETE_OBSERVATIONS,
    TOOL_DELETE_RELATIONS,
    TOOL_OPEN_NODES,
    TOOL_READ_GRAPH,
    TOOL_SEARCH_NODES,
    Graph,
    InvalidRequestError,
    clean_strings,
    normalize_graph,
    trimmed,
)
from ..mcp_client import ToolInvoker
from .rename import RenameOrchestrator, RenameResult, StepRunner

logger = logging.getLogger(__name__)


def _names(values: Any, message: str) -> list[str]:
    """Non-empty list of non-blank strings, trimmed; anything else is rejected."""
    if not isinstance(values, list) or not values:
        raise InvalidRequestError(message)
    if not all(isinstance(v, str) and v.strip() for v in values):
        raise InvalidRequestError(message)
    return [v.strip() for v in values]


def _relations(values: Any) -> list[dict]:
    message = 'Body must be { "relations": [{ "from": string, "to": string, "relationType": string }] }.'
    if not isinstance(values, list) or not values:
        raise InvalidRequestError(message)

    relations = []
    for item in values:
        if not isinstance(item, dict):
            raise InvalidRequestError(message)
        relation = {
            "from": trimmed(item.get("from")),
            "to": trimmed(item.get("to")),
            "relationType": trimmed(item.get("relationType")),
        }
        if not all(relation.values()):
            raise InvalidRequestError(message)
        relations.append(relation)
    return relations


class MemoryGraphService:
    """Validates caller input and maps each operation onto store tool calls."""

    def __init__(self, invoker: ToolInvoker):
        self.invoker = invoker
        self.renamer = RenameOrchestrator(invoker)

    # ========================================================================
    # Reads
    # ========================================================================

    async def read_graph(self) -> Graph:
        return normalize_graph(await self.invoker.call_tool(TOOL_READ_GRAPH))

    async def open_nodes(self, names: Any) -> Any:
        names = _names(names, 'Body must be { "names": string[] }.')
        return await self.invoker.call_tool(TOOL_OPEN_NODES, {"names": names})

    async def search_nodes(self, query: Any) -> Any:
        query = trimmed(query)
        if not query:
            return []
        return await self.invoker.call_tool(TOOL_SEARCH_NODES, {"query": query})

    # ========================================================================
    # Entities and relations
    # ========================================================================

    async def create_entities(self, entities: Any) -> None:
        message = 'Body must be { "entities": [{ "name": string, "entityType"?: string, "observations"?: string[] }] }.'
        if not isinstance(entities, list) or not entities:
            raise InvalidRequestError(message)

        payload = []
        for item in entities:
            name = trimmed(item.get("name")) if isinstance(item, dict) else ""
            if not name:
                raise InvalidRequestError(message)
            entity: dict[str, Any] = {"name": name}
            entity_type = trimmed(item.get("entityType"))
            if entity_type:
                entity["entityType"] = entity_type
            entity["observations"] = clean_strings(item.get("observations"))
            payload.append(entity)

        await self.invoker.call_tool(TOOL_CREATE_ENTITIES, {"entities": payload})

    async def delete_entities(self, entity_names: Any) -> None:
        names = _names(entity_names, 'Body must be { "entityNames": string[] }.')
        await self.invoker.call_tool(TOOL_DELETE_ENTITIES, {"entityNames": names})

    async def create_relations(self, relations: Any) -> None:
        await self.invoker.call_tool(TOOL_CREATE_RELATIONS, {"relations": _relations(relations)})

    async def delete_relations(self, relations: Any) -> None:
        await self.invoker.call_tool(TOOL_DELETE_RELATIONS, {"relations": _relations(relations)})

    async def rename_entity(self, from_name: Any, to_name: Any, to_type: Any = None) -> RenameResult:
        return await self.renamer.rename(from_name, to_name, to_type)

    # ========================================================================
    # Observations
    # ========================================================================

    async def add_observations(self, entity_name: Any, contents: Any) -> None:
        entity_name = trimmed(entity_name)
        contents = clean_strings(contents)
        if not entity_name or not contents:
            raise InvalidRequestError('Body must be { "entityName": string, "contents": string[] }.')

        await self.invoker.call_tool(
            TOOL_ADD_OBSERVATIONS,
            {"observations": [{"entityName": entity_name, "contents": contents}]},
        )

    async def delete_observations(self, entity_name: Any, observations: Any) -> None:
        entity_name = trimmed(entity_name)
        observations = clean_strings(observations)
        if not entity_name or not observations:
            raise InvalidRequestError('Body must be { "entityName": string, "observations": string[] }.')

        await self.invoker.call_tool(
            TOOL_DELETE_OBSERVATIONS,
            {"deletions": [{"entityName": entity_name, "observations": observations}]},
        )

    async def update_observation(self, entity_name: Any, old: Any, new: Any) -> None:
        """Replace one observation with another (delete, then add)."""
        entity_name, old, new = trimmed(entity_name), trimmed(old), trimmed(new)
        if not entity_name or not old or not new:
            raise InvalidRequestError('Body must be { "entityName": string, "from": string, "to": string }.')
        if old == new:
            return

        steps = StepRunner("update observation")
        await steps.run(
            "delete_observation",
            self.invoker.call_tool(
                TOOL_DELETE_OBSERVATIONS,
                {"deletions": [{"entityName": entity_name, "observations": [old]}]},
            ),
        )
        await steps.run(
            "add_observation",
            self.invoker.call_tool(
                TOOL_ADD_OBSERVATIONS,
                {"observations": [{"entityName": entity_name, "contents": [new]}]},
            ),
        )
