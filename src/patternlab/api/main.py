"""FastAPI application for Pattern Lab."""

from __future__ import annotations

import logging
import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from patternlab import __version__
from patternlab.export import generate_markdown
from patternlab.models import Favorite, FavoriteCreate, Pattern
from patternlab.sandbox import (
    CodeExecutor,
    ExecutionSession,
    SandboxConfig,
    SessionBusyError,
    SessionRegistry,
)
from patternlab.storage import PatternNotFoundError, Storage, get_storage
from patternlab.utils.config import get_settings

logger = logging.getLogger(__name__)

USER_ID_HEADER = "userid"

# Global instances
storage: Storage | None = None
executor: CodeExecutor | None = None
sessions: SessionRegistry | None = None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    global storage, executor, sessions

    settings = get_settings()
    logging.getLogger("patternlab").setLevel(settings.log_level.upper())

    storage = get_storage()
    await storage.connect()

    executor = CodeExecutor(SandboxConfig(allowed_imports=settings.sandbox_allowed_imports))
    sessions = SessionRegistry(
        executor=executor,
        delay=settings.run_delay_ms / 1000,
        max_sessions=settings.max_sessions,
    )
    logger.info(f"Pattern Lab API initialized with {type(storage).__name__}")

    yield

    # Cleanup
    if storage:
        await storage.disconnect()

    logger.info("Pattern Lab API shutting down")


async def assign_user_id(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Give anonymous callers an identifier and echo it on the response."""
    user_id = request.headers.get(USER_ID_HEADER) or uuid.uuid4().hex
    request.state.user_id = user_id
    response = await call_next(request)
    response.headers[USER_ID_HEADER] = user_id
    return response


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render errors as {"message": ...} bodies."""
    return JSONResponse(
        {"message": exc.detail}, status_code=exc.status_code, headers=exc.headers
    )


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed request bodies as 400."""
    return JSONResponse(
        {"message": "Invalid request", "errors": jsonable_encoder(exc.errors())},
        status_code=400,
    )


def get_user_id(request: Request) -> str:
    return request.state.user_id


def get_store() -> Storage:
    if storage is None:
        raise HTTPException(status_code=503, detail="Service not initialized")
    return storage


def get_sessions() -> SessionRegistry:
    if sessions is None:
        raise HTTPException(status_code=503, detail="Service not initialized")
    return sessions


def parse_pattern_id(pattern_id: str) -> int:
    try:
        return int(pattern_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail="Invalid pattern ID") from e


# Routers - defined before create_app
health_router = APIRouter(tags=["Health"])
patterns_router = APIRouter(prefix="/api", tags=["Patterns"])
favorites_router = APIRouter(prefix="/api/favorites", tags=["Favorites"])
sandbox_router = APIRouter(prefix="/api", tags=["Sandbox"])


# Request/Response models
class ExecuteRequest(BaseModel):
    """Request model for a one-off sandbox run."""

    source: str = Field(..., description="Python source to execute")


class SourceUpdate(BaseModel):
    """Request model for replacing a session's source buffer."""

    source: str


class ViewSelection(BaseModel):
    """Request model for switching the editor view."""

    view: str = Field(..., description="code or output")


@health_router.get("/api/health")
async def health_check() -> dict[str, Any]:
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": __version__,
        "service": "patternlab-api",
    }


@patterns_router.get("/patterns", response_model=list[Pattern])
async def list_patterns(store: Storage = Depends(get_store)) -> list[Pattern]:
    """List all patterns."""
    try:
        return await store.get_all_patterns()
    except Exception as e:
        logger.exception(f"Failed to fetch patterns: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch patterns") from e


async def _require_pattern(store: Storage, slug: str) -> Pattern:
    try:
        pattern = await store.get_pattern_by_slug(slug)
    except Exception as e:
        logger.exception(f"Failed to fetch pattern {slug}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch pattern") from e

    if pattern is None:
        raise HTTPException(status_code=404, detail="Pattern not found")
    return pattern


@patterns_router.get("/patterns/{slug}", response_model=Pattern)
async def get_pattern(slug: str, store: Storage = Depends(get_store)) -> Pattern:
    """Get a pattern by slug."""
    return await _require_pattern(store, slug)


@patterns_router.get("/patterns/{slug}/markdown", response_class=PlainTextResponse)
async def export_pattern(slug: str, store: Storage = Depends(get_store)) -> PlainTextResponse:
    """Export a pattern as a Markdown document."""
    pattern = await _require_pattern(store, slug)
    return PlainTextResponse(
        generate_markdown(pattern),
        media_type="text/markdown",
        headers={"Content-Disposition": f'attachment; filename="{slug}.md"'},
    )


@patterns_router.get("/categories/{category}", response_model=list[Pattern])
async def patterns_by_category(
    category: str, store: Storage = Depends(get_store)
) -> list[Pattern]:
    """List patterns in a category."""
    try:
        return await store.get_patterns_by_category(category)
    except Exception as e:
        logger.exception(f"Failed to fetch category {category}: {e}")
        raise HTTPException(
            status_code=500, detail="Failed to fetch patterns by category"
        ) from e


@patterns_router.get("/search", response_model=list[Pattern])
async def search_patterns(
    q: str | None = None, store: Storage = Depends(get_store)
) -> list[Pattern]:
    """Search patterns by name, description and content."""
    if not q:
        raise HTTPException(status_code=400, detail="Query parameter 'q' is required")

    try:
        return await store.search_patterns(q)
    except Exception as e:
        logger.exception(f"Search failed for {q!r}: {e}")
        raise HTTPException(status_code=500, detail="Failed to search patterns") from e


@favorites_router.get("", response_model=list[Pattern])
async def list_favorites(
    user_id: str = Depends(get_user_id), store: Storage = Depends(get_store)
) -> list[Pattern]:
    """List the caller's favorite patterns."""
    try:
        return await store.get_favorites(user_id)
    except Exception as e:
        logger.exception(f"Failed to fetch favorites: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch favorites") from e


@favorites_router.post("", response_model=Favorite, status_code=201)
async def add_favorite(
    body: FavoriteCreate,
    user_id: str = Depends(get_user_id),
    store: Storage = Depends(get_store),
) -> Favorite:
    """Mark a pattern as favorite."""
    try:
        if await store.get_pattern(body.pattern_id) is None:
            raise HTTPException(status_code=404, detail="Pattern not found")
        if await store.is_favorite(body.pattern_id, user_id):
            raise HTTPException(status_code=400, detail="Pattern is already a favorite")
        return await store.add_favorite(body, user_id)
    except HTTPException:
        raise
    except PatternNotFoundError as e:
        raise HTTPException(status_code=404, detail="Pattern not found") from e
    except Exception as e:
        logger.exception(f"Failed to add favorite: {e}")
        raise HTTPException(status_code=500, detail="Failed to add favorite") from e


@favorites_router.delete("/{pattern_id}", status_code=204)
async def remove_favorite(
    pattern_id: str,
    user_id: str = Depends(get_user_id),
    store: Storage = Depends(get_store),
) -> Response:
    """Remove a pattern from the caller's favorites."""
    parsed_id = parse_pattern_id(pattern_id)

    try:
        removed = await store.remove_favorite(parsed_id, user_id)
    except Exception as e:
        logger.exception(f"Failed to remove favorite: {e}")
        raise HTTPException(status_code=500, detail="Failed to remove favorite") from e

    if not removed:
        raise HTTPException(status_code=404, detail="Favorite not found")
    return Response(status_code=204)


@favorites_router.get("/{pattern_id}")
async def check_favorite(
    pattern_id: str,
    user_id: str = Depends(get_user_id),
    store: Storage = Depends(get_store),
) -> dict[str, bool]:
    """Check whether a pattern is one of the caller's favorites."""
    parsed_id = parse_pattern_id(pattern_id)

    try:
        return {"isFavorite": await store.is_favorite(parsed_id, user_id)}
    except Exception as e:
        logger.exception(f"Failed to check favorite: {e}")
        raise HTTPException(
            status_code=500, detail="Failed to check favorite status"
        ) from e


@sandbox_router.post("/execute")
async def execute_source(body: ExecuteRequest) -> dict[str, Any]:
    """Run source once, outside any session."""
    if executor is None:
        raise HTTPException(status_code=503, detail="Service not initialized")

    return executor.execute(body.source).to_dict()


async def _session_for(
    slug: str, user_id: str, store: Storage, registry: SessionRegistry
) -> ExecutionSession:
    pattern = await _require_pattern(store, slug)
    return registry.get_or_create(user_id, slug, pattern.code_template)


@sandbox_router.get("/patterns/{slug}/session")
async def get_session(
    slug: str,
    user_id: str = Depends(get_user_id),
    store: Storage = Depends(get_store),
    registry: SessionRegistry = Depends(get_sessions),
) -> dict[str, Any]:
    """Get the caller's editor session for a pattern."""
    session = await _session_for(slug, user_id, store, registry)
    return session.snapshot()


@sandbox_router.put("/patterns/{slug}/session/source")
async def update_session_source(
    slug: str,
    body: SourceUpdate,
    user_id: str = Depends(get_user_id),
    store: Storage = Depends(get_store),
    registry: SessionRegistry = Depends(get_sessions),
) -> dict[str, Any]:
    """Replace the session's source buffer."""
    session = await _session_for(slug, user_id, store, registry)
    session.update_source(body.source)
    return session.snapshot()


@sandbox_router.post("/patterns/{slug}/session/view")
async def select_session_view(
    slug: str,
    body: ViewSelection,
    user_id: str = Depends(get_user_id),
    store: Storage = Depends(get_store),
    registry: SessionRegistry = Depends(get_sessions),
) -> dict[str, Any]:
    """Switch between the code and output views."""
    session = await _session_for(slug, user_id, store, registry)
    try:
        session.select_view(body.view)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return session.snapshot()


@sandbox_router.post("/patterns/{slug}/session/run")
async def run_session(
    slug: str,
    user_id: str = Depends(get_user_id),
    store: Storage = Depends(get_store),
    registry: SessionRegistry = Depends(get_sessions),
) -> dict[str, Any]:
    """Run the session's current source."""
    await _session_for(slug, user_id, store, registry)

    try:
        session = await registry.run(user_id, slug)
    except SessionBusyError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e

    return {
        **session.snapshot(),
        "notices": [notice.to_dict() for notice in session.pop_notices()],
    }


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    application = FastAPI(
        debug=settings.debug,
        title="Pattern Lab API",
        description="Design pattern articles with a runnable Python code sandbox",
        version=__version__,
        lifespan=lifespan,
    )

    application.middleware("http")(assign_user_id)
    application.add_exception_handler(StarletteHTTPException, http_error_handler)
    application.add_exception_handler(RequestValidationError, validation_error_handler)

    # Include routes
    application.include_router(health_router)
    application.include_router(patterns_router)
    application.include_router(favorites_router)
    application.include_router(sandbox_router)

    return application


# Create default app instance
app = create_app()
