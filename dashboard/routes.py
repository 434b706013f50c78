import logging
from pathlib import Path

from fastapi import APIRouter, Request
from fastapi.responses import FileResponse, JSONResponse, PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, generate_latest

from jnfo.jellyfin_client import UpstreamError

logger = logging.getLogger(__name__)

router = APIRouter()
static_router = APIRouter()

ACTIVE_STREAMS = Gauge("jnfo_active_streams", "Sessions with a now-playing item")
RECENT_BROWSERS = Gauge("jnfo_recent_browsers", "Idle sessions active within the recency window")
TOTAL_SESSIONS = Gauge("jnfo_total_sessions", "Sessions reported by Jellyfin")
UPSTREAM_FAILURES = Counter("jnfo_upstream_failures", "Dashboard builds that failed upstream")

FETCH_ERROR = {"error": "Failed to fetch data"}
NOT_FOUND = {"message": "Not found"}


@router.get("/api/v1/dashboard")
async def dashboard(request: Request):
    """Aggregated server overview for the frontend."""
    aggregator = request.app.state.aggregator
    try:
        result = await aggregator.build()
    except UpstreamError as e:
        logger.error(f"Dashboard build failed: {e}")
        UPSTREAM_FAILURES.inc()
        return FETCH_ERROR
    except Exception:
        logger.exception("Unexpected error while building dashboard")
        UPSTREAM_FAILURES.inc()
        return FETCH_ERROR

    ACTIVE_STREAMS.set(len(result.active_streams))
    RECENT_BROWSERS.set(len(result.recent_browsers))
    TOTAL_SESSIONS.set(result.total_sessions)
    return result.model_dump(by_alias=True)


@router.get("/health")
async def health(request: Request):
    """Basic health check."""
    settings = request.app.state.settings
    return {
        "status": "ok",
        "jellyfin_url": settings.base_url,
        "static_dir_present": (settings.static_path / "index.html").is_file(),
    }


@router.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return PlainTextResponse(generate_latest(), media_type=CONTENT_TYPE_LATEST)


def _resolve_static(root: Path, path: str) -> Path | None:
    """Existing file under ``root`` for ``path``, refusing traversal."""
    root = root.resolve()
    candidate = (root / path).resolve()
    if not candidate.is_relative_to(root) or not candidate.is_file():
        return None
    return candidate


@static_router.get("/")
async def index(request: Request):
    index_file = request.app.state.settings.static_path / "index.html"
    if not index_file.is_file():
        return JSONResponse(NOT_FOUND, status_code=404)
    return FileResponse(index_file)


@static_router.get("/{full_path:path}")
async def static_fallback(request: Request, full_path: str):
    """Serve frontend files, falling back to the index for client-side routes."""
    static_path = request.app.state.settings.static_path
    found = _resolve_static(static_path, full_path)
    if found is not None:
        return FileResponse(found)

    index_file = static_path / "index.html"
    is_client_route = not full_path.startswith("api/") and not Path(full_path).suffix
    if is_client_route and index_file.is_file():
        return FileResponse(index_file)
    return JSONResponse(NOT_FOUND, status_code=404)
