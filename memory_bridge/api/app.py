"""FastAPI HTTP server for the MCP knowledge graph memory store."""

import logging
import os
import sys
from contextlib import asynccontextmanager
from typing import Any

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..core import (
    ConfigError,
    EntityExistsError,
    EntityNotFoundError,
    InvalidRequestError,
    StepFailedError,
    error_message,
)
from ..mcp_client import ConnectionManager, ToolInvoker
from ..version import __version__
from .service import MemoryGraphService

# Configure logging
log_level = os.getenv("MEMORY_BRIDGE_LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    stream=sys.stderr
)
logger = logging.getLogger(__name__)


# ============================================================================
# Request Models
# ============================================================================

class NamesRequest(BaseModel):
    """Request naming entities to open."""
    names: list[str] | None = Field(None, description="Entity names")


class EntitiesRequest(BaseModel):
    """Request to create entities."""
    entities: list[dict[str, Any]] | None = Field(
        None, description="Entities: name, optional entityType and observations"
    )


class EntityNamesRequest(BaseModel):
    """Request to delete entities."""
    entityNames: list[str] | None = Field(None, description="Entity names to delete")


class RelationsRequest(BaseModel):
    """Request to create or delete relations."""
    relations: list[dict[str, Any]] | None = Field(
        None, description="Relations: from, to, relationType"
    )


class RenameRequest(BaseModel):
    """Request to rename an entity."""
    fromName: Any = Field(None, description="Current entity name")
    toName: Any = Field(None, description="New entity name")
    toType: Any = Field(None, description="Optional entity type override")


class AddObservationsRequest(BaseModel):
    """Request to add observations to an entity."""
    entityName: str | None = Field(None, description="Entity name")
    contents: list[Any] | None = Field(None, description="Observations to add")


class DeleteObservationsRequest(BaseModel):
    """Request to delete observations from an entity."""
    entityName: str | None = Field(None, description="Entity name")
    observations: list[Any] | None = Field(None, description="Observations to delete")


class UpdateObservationRequest(BaseModel):
    """Request to replace one observation with another."""
    entityName: str | None = Field(None, description="Entity name")
    from_: str | None = Field(None, alias="from", description="Observation to replace")
    to: str | None = Field(None, description="Replacement observation")


# ============================================================================
# Dependencies
# ============================================================================

def get_connections(request: Request) -> ConnectionManager:
    return request.app.state.connections


def get_service(request: Request) -> MemoryGraphService:
    return request.app.state.service


def _upstream_error(action: str, e: Exception) -> HTTPException:
    logger.error(f"Error {action}: {e}", exc_info=True)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=error_message(e))


def _config_snapshot(connections: ConnectionManager) -> dict:
    try:
        return connections.config_loader().to_dict()
    except ConfigError as e:
        return {"error": str(e)}


# ============================================================================
# Application
# ============================================================================

def create_app(connections: ConnectionManager | None = None) -> FastAPI:
    """Build the HTTP app around one connection manager."""
    connections = connections or ConnectionManager()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage application lifecycle."""
        logger.info("Starting memory bridge HTTP server...")
        try:
            yield
        finally:
            await connections.shutdown()
            logger.info("Server stopped")

    app = FastAPI(
        title="Memory Bridge",
        description="HTTP endpoints for an MCP knowledge graph memory store",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.connections = connections
    app.state.service = MemoryGraphService(ToolInvoker(connections))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": "Invalid request body.", "errors": jsonable_errors(exc)},
        )

    app.include_router(build_router())
    return app


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]


def build_router() -> APIRouter:
    router = APIRouter()

    @router.get("/api/health")
    async def health_check(connections: ConnectionManager = Depends(get_connections)):
        """Health check endpoint."""
        return {
            "status": "ok",
            "version": __version__,
            "connected": connections.connected,
        }

    @router.get("/api/memory/graph")
    async def read_graph(service: MemoryGraphService = Depends(get_service)):
        """Read the whole graph in canonical shape."""
        try:
            graph = await service.read_graph()
        except Exception as e:
            raise _upstream_error("reading graph", e)
        return {"ok": True, "graph": graph.to_dict()}

    @router.post("/api/memory/nodes")
    async def open_nodes(request: NamesRequest, service: MemoryGraphService = Depends(get_service)):
        """Open entities by name."""
        try:
            nodes = await service.open_nodes(request.names)
        except InvalidRequestError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except Exception as e:
            raise _upstream_error("opening nodes", e)
        return {"ok": True, "nodes": nodes}

    @router.get("/api/memory/search")
    async def search_nodes(q: str | None = None, service: MemoryGraphService = Depends(get_service)):
        """Search entities; a blank query returns no results."""
        try:
            results = await service.search_nodes(q)
        except Exception as e:
            raise _upstream_error("searching nodes", e)
        return {"ok": True, "results": results}

    @router.post("/api/memory/entities/create")
    async def create_entities(request: EntitiesRequest, service: MemoryGraphService = Depends(get_service)):
        """Create entities."""
        try:
            await service.create_entities(request.entities)
        except InvalidRequestError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except Exception as e:
            raise _upstream_error("creating entities", e)
        return {"ok": True}

    @router.post("/api/memory/entities/delete")
    async def delete_entities(request: EntityNamesRequest, service: MemoryGraphService = Depends(get_service)):
        """Delete entities and their relations."""
        try:
            await service.delete_entities(request.entityNames)
        except InvalidRequestError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except Exception as e:
            raise _upstream_error("deleting entities", e)
        return {"ok": True}

    @router.post("/api/memory/entities/rename")
    async def rename_entity(request: RenameRequest, service: MemoryGraphService = Depends(get_service)):
        """
        Rename an entity: create the new one, recreate its relations, delete the old one.
        A failure after the first step leaves the graph partly renamed; the
        error detail names the failed stage and the completed ones.
        """
        try:
            result = await service.rename_entity(request.fromName, request.toName, request.toType)
        except InvalidRequestError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except EntityNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except EntityExistsError as e:
            raise HTTPException(status_code=409, detail=str(e))
        except StepFailedError as e:
            logger.error(f"Error renaming entity: {e}", exc_info=True)
            raise HTTPException(
                status_code=500,
                detail={
                    "error": error_message(e.cause),
                    "stage": e.stage,
                    "completed": e.completed,
                },
            )
        except Exception as e:
            raise _upstream_error("renaming entity", e)
        return {
            "ok": True,
            "fromName": result.from_name,
            "toName": result.to_name,
            "entityType": result.entity_type,
            "createdRelations": result.created_relations,
        }

    @router.post("/api/memory/relations/create")
    async def create_relations(request: RelationsRequest, service: MemoryGraphService = Depends(get_service)):
        """Create relations."""
        try:
            await service.create_relations(request.relations)
        except InvalidRequestError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except Exception as e:
            raise _upstream_error("creating relations", e)
        return {"ok": True}

    @router.post("/api/memory/relations/delete")
    async def delete_relations(request: RelationsRequest, service: MemoryGraphService = Depends(get_service)):
        """Delete relations."""
        try:
            await service.delete_relations(request.relations)
        except InvalidRequestError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except Exception as e:
            raise _upstream_error("deleting relations", e)
        return {"ok": True}

    @router.post("/api/memory/observations/add")
    async def add_observations(request: AddObservationsRequest, service: MemoryGraphService = Depends(get_service)):
        """Add observations to an entity."""
        try:
            await service.add_observations(request.entityName, request.contents)
        except InvalidRequestError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except Exception as e:
            raise _upstream_error("adding observations", e)
        return {"ok": True}

    @router.post("/api/memory/observations/delete")
    async def delete_observations(
        request: DeleteObservationsRequest,
        service: MemoryGraphService = Depends(get_service),
    ):
        """Delete observations from an entity."""
        try:
            await service.delete_observations(request.entityName, request.observations)
        except InvalidRequestError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except Exception as e:
            raise _upstream_error("deleting observations", e)
        return {"ok": True}

    @router.post("/api/memory/observations/update")
    async def update_observation(
        request: UpdateObservationRequest,
        service: MemoryGraphService = Depends(get_service),
    ):
        """Replace one observation of an entity with another."""
        try:
            await service.update_observation(request.entityName, request.from_, request.to)
        except InvalidRequestError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except StepFailedError as e:
            logger.error(f"Error updating observation: {e}", exc_info=True)
            raise HTTPException(
                status_code=500,
                detail={
                    "error": error_message(e.cause),
                    "stage": e.stage,
                    "completed": e.completed,
                },
            )
        except Exception as e:
            raise _upstream_error("updating observation", e)
        return {"ok": True}

    @router.get("/api/memory/status")
    async def memory_status(
        connect: str | None = None,
        reset: str | None = None,
        connections: ConnectionManager = Depends(get_connections),
    ):
        """
        Configuration and connection snapshot.
        ?reset=1 drops the current connection first; ?connect=1 forces a connect.
        """
        if reset == "1":
            connections.reset()

        config = _config_snapshot(connections)
        current = connections.peek()

        if connect != "1":
            return {
                "ok": True,
                "config": config,
                "connected": current is not None,
                "connection": current.to_dict() if current else None,
            }

        try:
            connection = await connections.acquire()
        except Exception as e:
            logger.error(f"Error connecting to memory store: {e}")
            current = connections.peek()
            return JSONResponse(
                status_code=500,
                content={
                    "ok": False,
                    "config": config,
                    "connected": False,
                    "error": error_message(e),
                    "connection": current.to_dict() if current else None,
                },
            )

        return {
            "ok": True,
            "config": config,
            "connected": True,
            "connection": connection.status().to_dict(),
        }

    return router


app = create_app()

