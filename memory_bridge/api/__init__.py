"""HTTP-facing components: graph service, rename workflow and FastAPI app."""

from .rename import RenameOrchestrator, RenameResult, RenameStage, StepRunner, relink_relations
from .service import MemoryGraphService

__all__ = [
    "RenameOrchestrator",
    "RenameResult",
    "RenameStage",
    "StepRunner",
    "relink_relations",
    "MemoryGraphService",
]
