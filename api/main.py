"""
Forest Monitor Proxy API

FastAPI service that resolves data server-side on behalf of browsers,
which cannot call the fire and forest-change upstreams directly.
Every response is an envelope: {success, data, source, error}.
Routes are served at the root and under the /api prefix.
"""

from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Optional
import logging

from fastapi import APIRouter, Depends, FastAPI, Query
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config.settings import get_settings
from forest_engine.errors import ResolutionFailed
from forest_engine.facade import ForestDataService
from forest_engine.fallback import Resolution
from forest_engine.models import DataCategory

settings = get_settings()

# Configure logging
logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Server-side data resolution for the forest monitoring dashboard",
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

router = APIRouter()


@lru_cache()
def get_service() -> ForestDataService:
    """Facade hosted by the proxy: server context, no proxy route of its own."""
    server_settings = get_settings().model_copy(
        update={"execution_context": "server", "proxy_base_url": None}
    )
    return ForestDataService.from_settings(server_settings)


# ============== Envelope helpers ==============

def envelope(data: Any, source: str) -> dict:
    return {"success": True, "data": data, "source": source}


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def resolution_envelope(resolution: Resolution, single: bool = False) -> dict:
    records = [record.model_dump(mode="json") for record in resolution.records]
    return envelope(records[0] if single else records, resolution.source)


def live_only_flag(no_mock: Optional[str]) -> Optional[bool]:
    """``no_mock=1`` forces live-only; any other value defers to server configuration."""
    if no_mock is not None and no_mock.strip().lower() in ("1", "true", "yes"):
        return True
    return None


# ============== Endpoints ==============

@router.get("/health")
async def health_check(service: ForestDataService = Depends(get_service)):
    return {
        "success": True,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.app_version,
        **service.health(),
    }


@router.get("/fire-alerts")
async def fire_alerts(
    region: str = "world",
    days: int = Query(1, ge=1, le=10),
    dataset: Optional[str] = None,
    no_mock: Optional[str] = None,
    service: ForestDataService = Depends(get_service),
):
    params = {"region": region, "days": days}
    if dataset:
        params["dataset"] = dataset
    resolution = await service.resolve(DataCategory.FIRE, params, live_only_flag(no_mock))
    return resolution_envelope(resolution)


@router.get("/deforestation-alerts")
async def deforestation_alerts(
    region: str = "BRA",
    days: int = Query(90, ge=1),
    limit: int = Query(50, ge=1, le=500),
    no_mock: Optional[str] = None,
    service: ForestDataService = Depends(get_service),
):
    resolution = await service.resolve(
        DataCategory.DEFORESTATION, {"region": region, "days": days, "limit": limit}, live_only_flag(no_mock)
    )
    return resolution_envelope(resolution)


@router.get("/weather")
async def weather(
    lat: Optional[float] = None,
    lng: Optional[float] = None,
    no_mock: Optional[str] = None,
    service: ForestDataService = Depends(get_service),
):
    if lat is None or lng is None:
        return error_response(400, "Latitude and longitude required")
    resolution = await service.resolve(
        DataCategory.WEATHER, {"lat": round(lat, 2), "lng": round(lng, 2)}, live_only_flag(no_mock)
    )
    return resolution_envelope(resolution, single=True)


@router.get("/forest-regions")
async def forest_regions(
    no_mock: Optional[str] = None,
    service: ForestDataService = Depends(get_service),
):
    resolution = await service.resolve(DataCategory.REGIONS, {}, live_only_flag(no_mock))
    return resolution_envelope(resolution)


@router.get("/biodiversity")
async def biodiversity(
    region: str = "global",
    limit: int = Query(5, ge=1, le=50),
    no_mock: Optional[str] = None,
    service: ForestDataService = Depends(get_service),
):
    names = service.tracked_species[:limit]
    resolution = await service.resolve(
        DataCategory.BIODIVERSITY,
        {"region": region, "species": names, "limit": len(names)},
        live_only_flag(no_mock),
    )
    return resolution_envelope(resolution)


@router.get("/satellite-data")
async def satellite_data(
    lat: Optional[float] = None,
    lng: Optional[float] = None,
    layer: Optional[str] = None,
    no_mock: Optional[str] = None,
    service: ForestDataService = Depends(get_service),
):
    if lat is None or lng is None:
        return error_response(400, "Latitude and longitude required")
    params = {"lat": round(lat, 4), "lng": round(lng, 4)}
    if layer:
        params["layer"] = layer
    resolution = await service.resolve(DataCategory.SATELLITE, params, live_only_flag(no_mock))
    return resolution_envelope(resolution, single=True)


@router.get("/sources")
async def sources(service: ForestDataService = Depends(get_service)):
    statuses = await service.source_statuses()
    return envelope(statuses, "health-check")


app.include_router(router)
app.include_router(router, prefix="/api")


# ============== Error Handlers ==============

@app.exception_handler(ResolutionFailed)
async def resolution_failed_handler(request, exc: ResolutionFailed):
    logger.error(f"Resolution failed for {request.url.path}: {exc}")
    return error_response(502, str(exc))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc: RequestValidationError):
    return error_response(400, f"Invalid request parameters: {exc.errors()}")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return error_response(404, "Endpoint not found")
    return error_response(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    logger.error(f"Unhandled exception: {exc}")
    return error_response(500, "Internal server error")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
