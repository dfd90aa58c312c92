"""Type definitions for the canonical knowledge graph."""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class Entity:
    """Uniquely named node in the knowledge graph."""
    name: str
    entity_type: str | None = None
    observations: list[str] | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data = dict(self.extra)
        data["name"] = self.name
        if self.entity_type is not None:
            data["entityType"] = self.entity_type
        if self.observations is not None:
            data["observations"] = list(self.observations)
        return data


@dataclass
class Relation:
    """Typed directed edge between two entity names."""
    from_name: str
    to_name: str
    relation_type: str
    extra: dict[str, Any] = field(default_factory=dict)

    def touches(self, name: str) -> bool:
        return self.from_name == name or self.to_name == name

    def to_dict(self) -> dict[str, Any]:
        data = dict(self.extra)
        data["from"] = self.from_name
        data["to"] = self.to_name
        data["relationType"] = self.relation_type
        return data


@dataclass
class Graph:
    """Complete graph structure, plus the payload it was read from."""
    entities: list[Entity] = field(default_factory=list)
    relations: list[Relation] = field(default_factory=list)
    raw: Any = field(default=None, repr=False, compare=False)

    def find_entity(self, name: str) -> Entity | None:
        for entity in self.entities:
            if entity.name == name:
                return entity
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "entities": [e.to_dict() for e in self.entities],
            "relations": [r.to_dict() for r in self.relations],
        }
