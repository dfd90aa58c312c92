"""
Normalization of heterogeneous graph payloads into the canonical Graph.

Two export conventions are understood:

- canonical: {"entities": [...], "relations": [...]}
- alternate: {"nodes": [...], "edges": [...]} where a node may carry "id"
  instead of "name", and an edge "source"/"target" instead of "from"/"to".

The alternate arrays are only consulted when the canonical ones produced no
usable item, separately for entities and relations. Malformed items are
skipped; normalize_graph never raises.
"""

from typing import Any, Callable

from .types import Entity, Graph, Relation
from .utils import as_string, string_items


def _first(item: dict, keys: tuple[str, ...]) -> tuple[str | None, str | None]:
    """Return (value, key) for the first key holding a non-blank string."""
    for key in keys:
        value = as_string(item.get(key))
        if value is not None:
            return value, key
    return None, None


def _entity(item: Any, name_keys: tuple[str, ...]) -> Entity | None:
    if not isinstance(item, dict):
        return None
    name, name_key = _first(item, name_keys)
    if name is None:
        return None
    entity_type, type_key = _first(item, ("entityType", "type"))

    consumed = {"name", "entityType", "observations", name_key, type_key}
    return Entity(
        name=name,
        entity_type=entity_type,
        observations=string_items(item.get("observations")),
        extra={k: v for k, v in item.items() if k not in consumed},
    )


def _relation(item: Any, from_keys: tuple[str, ...], to_keys: tuple[str, ...]) -> Relation | None:
    if not isinstance(item, dict):
        return None
    from_name, from_key = _first(item, from_keys)
    to_name, to_key = _first(item, to_keys)
    relation_type, type_key = _first(item, ("relationType", "type"))
    if from_name is None or to_name is None or relation_type is None:
        return None

    consumed = {"from", "to", "relationType", from_key, to_key, type_key}
    return Relation(
        from_name=from_name,
        to_name=to_name,
        relation_type=relation_type,
        extra={k: v for k, v in item.items() if k not in consumed},
    )


def _collect(items: Any, build: Callable[[Any], Any]) -> list:
    if not isinstance(items, list):
        return []
    return [built for built in map(build, items) if built is not None]


def normalize_graph(raw: Any) -> Graph:
    """Normalize any graph payload into a Graph, keeping raw for diagnostics."""
    if not isinstance(raw, dict):
        return Graph(raw=raw)

    entities = _collect(raw.get("entities"), lambda e: _entity(e, ("name",)))
    if not entities:
        entities = _collect(raw.get("nodes"), lambda n: _entity(n, ("name", "id")))

    relations = _collect(
        raw.get("relations"),
        lambda r: _relation(r, ("from",), ("to",)),
    )
    if not relations:
        relations = _collect(
            raw.get("edges"),
            lambda e: _relation(e, ("from", "source"), ("to", "target")),
        )

    return Graph(entities=entities, relations=relations, raw=raw)
