"""
FastAPI backend for Flyover Track.

This provides REST API endpoints for track import, presentation payloads,
and on-demand weather and wind enrichment.
"""

import io
import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from config.settings import (
    ALLOWED_TRACK_EXTENSIONS, APP_DESCRIPTION, APP_NAME, APP_VERSION,
    MAX_UPLOAD_SIZE_BYTES, WEATHER_SAMPLING_MODES, PipelineOptions,
    SimplifyConfig, WeatherConfig, WindConfig, configure_logging
)
from core.cache import CacheStore, MemoryCacheStore
from core.storage import InMemoryTrackStore, TrackNotFoundError, TrackStore
from core.validation import TrackParseError
from core.weather.provider import OpenMeteoProvider, WeatherProvider
from services.track_import_service import import_track
from services.track_view_service import ENCODINGS, TrackViewService
from services.weather_service import WeatherEnrichmentService
from services.wind_service import WindService

logger = logging.getLogger(__name__)


# Pydantic models for API responses
class TrackStatusResponse(BaseModel):
    track_id: str
    has_stats: bool
    has_weather: bool
    has_wind: bool
    points_count: int
    last_weather_error: Optional[str] = None


class TrackImportResponse(BaseModel):
    track_id: str
    points_count: int
    stats: Dict[str, Any]
    summary: Dict[str, Any]
    metadata: Dict[str, Any]
    weather: Optional[Dict[str, Any]] = None
    wind_applied: bool = False


class WeatherEnrichmentResponse(BaseModel):
    track_id: str
    skipped: bool = False
    features: int
    summary: Optional[Dict[str, Any]] = None
    wind_applied: bool = False


class WindResponse(BaseModel):
    track_id: str
    applied: bool
    has_data: bool
    points: int


def create_app(
    store: Optional[TrackStore] = None,
    cache: Optional[CacheStore] = None,
    provider: Optional[WeatherProvider] = None,
    options: Optional[PipelineOptions] = None,
    cors_origins: Optional[List[str]] = None
) -> FastAPI:
    """
    Build the API application around explicit collaborators.

    Args:
        store: Track attribute store (in-memory by default)
        cache: Weather/payload cache (in-memory by default)
        provider: Weather provider (Open-Meteo by default)
        options: Processing options (from FLYOVER_* environment by default)
        cors_origins: Allowed browser origins

    Returns:
        FastAPI application
    """
    store = store if store is not None else InMemoryTrackStore()
    cache = cache if cache is not None else MemoryCacheStore()
    provider = provider if provider is not None else OpenMeteoProvider()
    options = options if options is not None else PipelineOptions.from_env()

    app = FastAPI(title=f"{APP_NAME} API", description=APP_DESCRIPTION, version=APP_VERSION)

    # Add CORS middleware for frontend access
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins or [
            "http://localhost:3000",  # Dev server
            "http://localhost:8080",  # Static map viewer
        ],
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    view_service = TrackViewService(store, cache, options=options)
    weather_service = WeatherEnrichmentService(store, cache=cache, provider=provider, options=options)
    wind_service = WindService(store, options=options, cache=cache)

    app.state.store = store
    app.state.cache = cache
    app.state.options = options

    def require_track(track_id: str) -> None:
        if not store.exists(track_id):
            raise HTTPException(status_code=404, detail=f"Track {track_id} not found")

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "message": f"{APP_NAME} API",
            "version": APP_VERSION,
            "endpoints": {
                "POST /api/tracks": "Import a GPX track file",
                "GET /api/tracks/{id}": "Track presentation payload",
                "GET /api/tracks/{id}/status": "Per-subsystem status",
                "POST /api/tracks/{id}/weather": "Run weather enrichment",
                "POST /api/tracks/{id}/wind": "Run wind interpolation",
                "GET /api/health": "Health check endpoint"
            }
        }

    @app.get("/api/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "service": "flyover-track-api"}

    @app.get("/api/config")
    async def get_config():
        """Get current processing options and their ranges."""
        return {
            "options": options.as_dict(),
            "defaults": PipelineOptions().as_dict(),
            "simplify": SimplifyConfig.as_dict(),
            "weather": WeatherConfig.as_dict(),
            "wind": WindConfig.as_dict(),
            "ranges": {
                "weather_sampling": list(WEATHER_SAMPLING_MODES),
                "weather_step_km": {"min": 0.5, "max": 100, "step": 0.5},
                "weather_step_min": {"min": 1, "max": 240, "step": 1},
                "wind_interpolation_density": list(WindConfig.ALLOWED_DENSITIES),
                "simplify_target": {"min": SimplifyConfig.HARD_FLOOR, "max": SimplifyConfig.HARD_CEILING},
            }
        }

    @app.post("/api/tracks", response_model=TrackImportResponse)
    async def upload_track(file: UploadFile = File(...)):
        """
        Import a GPX track file.

        Args:
            file: GPX file to import

        Returns:
            Track id, statistics and enrichment outcome
        """
        if not file.filename or not file.filename.lower().endswith(ALLOWED_TRACK_EXTENSIONS):
            raise HTTPException(status_code=400, detail="Only GPX files are allowed")

        content = await file.read()
        if len(content) > MAX_UPLOAD_SIZE_BYTES:
            raise HTTPException(
                status_code=413,
                detail=f"File too large. Maximum size is {MAX_UPLOAD_SIZE_BYTES // 1024 // 1024}MB, "
                       f"received {len(content) / 1024 / 1024:.1f}MB"
            )

        file_obj = io.BytesIO(content)
        file_obj.name = file.filename

        logger.info(f"Processing file: {file.filename}")
        try:
            result = await run_in_threadpool(
                import_track, file_obj, store, cache=cache, provider=provider, options=options
            )
        except TrackParseError as e:
            logger.warning(f"Rejected {file.filename} ({e.code}): {e}")
            raise HTTPException(status_code=400, detail={"code": e.code, "message": str(e)}) from e

        return TrackImportResponse(**result.to_dict())

    @app.get("/api/tracks/{track_id}")
    def get_track(track_id: str, encoding: str = "absolute"):
        """Presentation payload: stats, simplified geometry, weather and wind."""
        require_track(track_id)
        if encoding not in ENCODINGS:
            raise HTTPException(status_code=400, detail=f"encoding must be one of {list(ENCODINGS)}")
        try:
            return view_service.get_track_payload(track_id, encoding=encoding)
        except TrackNotFoundError as e:
            raise HTTPException(status_code=404, detail=f"Track {track_id} not found") from e

    @app.get("/api/tracks/{track_id}/status", response_model=TrackStatusResponse)
    def get_track_status(track_id: str):
        """Whether stats, weather and wind exist for a track."""
        require_track(track_id)
        return TrackStatusResponse(track_id=track_id, **view_service.get_status(track_id))

    @app.post("/api/tracks/{track_id}/weather", response_model=WeatherEnrichmentResponse)
    def enrich_weather(track_id: str):
        """Re-run weather enrichment; a skipped success when weather is disabled."""
        require_track(track_id)
        outcome = weather_service.enrich_track(track_id)
        if not outcome.success:
            logger.error(f"On-demand weather enrichment failed for track {track_id}: {outcome.error}")
            raise HTTPException(
                status_code=502,
                detail=weather_service.get_last_error(track_id) or outcome.error or "Weather enrichment failed"
            )
        return WeatherEnrichmentResponse(
            track_id=track_id,
            skipped=outcome.skipped,
            features=len(outcome.collection) if outcome.collection is not None else 0,
            summary=outcome.summary.to_dict() if outcome.summary is not None else None,
            wind_applied=outcome.wind_applied,
        )

    @app.post("/api/tracks/{track_id}/wind", response_model=WindResponse)
    def interpolate_wind(track_id: str):
        """Re-run wind interpolation from the stored weather when wind analysis is enabled."""
        require_track(track_id)
        wind = wind_service.apply_to_track(track_id)
        return WindResponse(
            track_id=track_id,
            applied=wind is not None,
            has_data=wind.has_data if wind is not None else False,
            points=len(wind) if wind is not None else 0,
        )

    return app


configure_logging()
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
