"""
RFM Insights API
================

FastAPI endpoints for customer segmentation of uploaded transaction logs.

Usage:
    uvicorn api.main:app --reload

Endpoints:
    GET    /health                    - Health check
    POST   /analyze                   - Segment customers from an uploaded CSV
    POST   /explore                   - Drill-down rows of one segment
    GET    /settings                  - Segment thresholds of the caller
    POST   /settings                  - Update segment thresholds
    GET    /history                   - Recent stored analyses
    GET    /history/{id}              - One stored analysis
    POST   /history                   - Store an analysis
    DELETE /history                   - Clear stored analyses
    POST   /history/{id}/compare      - KPI deltas against a stored analysis

The caller is identified by the X-User-Id header, set by the
authenticating gateway in front of this service.
"""

import os
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, File, Header, HTTPException, Query, Request, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from rfm_insights import __version__
from rfm_insights.common import load_config
from rfm_insights.customer_segmentation import (
    AnalysisSnapshot,
    ColumnMappingFailed,
    SegmentAnalyzer,
    SegmentSettings,
)
from rfm_insights.pipeline import RFMAnalysisPipeline
from rfm_insights.storage import (
    HistoryNotFoundError,
    HistoryStore,
    SettingsStore,
    create_session_factory,
    create_tables,
)


# Request/Response models
class HealthResponse(BaseModel):
    status: str
    version: str


class HistoryCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    file_name: str = Field(alias='fileName')
    analysis_date: datetime = Field(alias='analysisDate')
    segmented_data: Dict[str, Any] = Field(alias='segmentedData')


class CompareRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    segmented_data: Dict[str, Any] = Field(alias='segmentedData')


class ExploreRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    segmented_data: Dict[str, Any] = Field(alias='segmentedData')
    segment: Optional[str] = None
    id_contains: str = Field('', alias='idContains')
    min_visits: float = Field(0, alias='minVisits')
    min_spend: float = Field(0, alias='minSpend')


def get_user_id(x_user_id: str = Header(...)) -> str:
    """Caller identity forwarded by the gateway."""
    return x_user_id


def create_app(config: Optional[Dict[str, Any]] = None) -> FastAPI:
    """
    Build the API application.

    Args:
        config: Loaded configuration (default: config/settings.yaml)

    Returns:
        FastAPI application with stores attached to ``app.state``
    """
    config = config or load_config(os.getenv("RFM_CONFIG", "config/settings.yaml"))
    session_factory = create_session_factory(config['database']['url'], init_schema=False)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        create_tables(session_factory)
        yield

    app = FastAPI(
        title="RFM Insights API",
        description="RFM customer segmentation for retail transaction logs",
        version=__version__,
        lifespan=lifespan,
    )

    # Add CORS middleware with environment-based configuration
    cors_origins = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:8080").split(",")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    defaults = SegmentSettings.from_config(config)
    pipeline = RFMAnalysisPipeline()
    analyzer = SegmentAnalyzer.from_config(config)
    history = HistoryStore(session_factory, list_limit=config['history']['list_limit'])
    settings_store = SettingsStore(session_factory, defaults=defaults)

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        logger.warning(f"Rejected payload on {request.url.path}: {exc.error_count()} errors")
        return JSONResponse(
            status_code=422,
            content={"detail": jsonable_encoder(exc.errors(include_url=False, include_context=False))},
        )

    app.state.config = config
    app.state.history = history
    app.state.settings_store = settings_store

    # Health check
    @app.get("/health", response_model=HealthResponse)
    async def health_check():
        """Health check endpoint."""
        return HealthResponse(status="healthy", version=__version__)

    @app.post("/analyze")
    async def analyze(
        file: UploadFile = File(...),
        location: Optional[str] = Query(None),
        file_name: Optional[str] = Query(None),
        save: bool = Query(True),
        user_id: str = Depends(get_user_id)
    ):
        """
        Segment customers from an uploaded transaction CSV.

        The CSV needs headers for a customer id, a date (dd/mm/yyyy) and an
        amount; common synonyms are recognised. An optional location column
        enables the ``location`` filter.
        """
        try:
            contents = await file.read()
            settings = settings_store.get(user_id)

            df = pipeline.loader.read_csv_text(contents)
            result = pipeline.analyze_frame(df, settings, location=location)

            if isinstance(result, ColumnMappingFailed):
                raise HTTPException(status_code=400, detail=result.reason)

            name = file_name or file.filename or "upload.csv"
            history_id = None
            # Location-scoped runs are views of an upload, not new uploads
            if save and result.location is None:
                history_id = history.save(user_id, name, datetime.now(), result.snapshot)

            column_map = result.column_map
            return {
                "status": "success",
                **result.to_dict(),
                "kpis": analyzer.calculate_kpis(result.snapshot).to_dict(),
                "insights": [i.to_dict() for i in analyzer.generate_insights(result.snapshot)],
                "rejectedRows": result.rejections.to_dict(),
                "anchorDate": result.anchor_date.isoformat() if result.anchor_date else None,
                "location": result.location,
                "locations": pipeline.list_locations(df, column_map),
                "locationLabel": column_map.location.label if column_map.location else None,
                "defaultSegment": analyzer.largest_segment(result.snapshot),
                "historyId": history_id,
            }

        except HTTPException:
            raise
        except UnicodeDecodeError:
            raise HTTPException(status_code=400, detail="The CSV must be UTF-8 encoded.")
        except Exception as e:
            logger.error(f"Analysis error: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    @app.post("/explore")
    async def explore(request: ExploreRequest):
        """Drill-down rows of one segment, highest spend first."""
        snapshot = AnalysisSnapshot.from_dict(request.segmented_data)
        segment = request.segment or analyzer.largest_segment(snapshot)
        rows = analyzer.explore(
            snapshot,
            segment,
            id_contains=request.id_contains,
            min_visits=request.min_visits,
            min_spend=request.min_spend,
        )
        return {
            "segment": segment,
            "description": snapshot.get(segment).description or "Explore customer data below.",
            "customers": [c.model_dump(by_alias=True) for c in rows],
        }

    @app.get("/settings")
    async def get_settings(user_id: str = Depends(get_user_id)):
        """Segment thresholds of the caller."""
        return settings_store.get(user_id).to_dict()

    @app.post("/settings")
    async def save_settings(payload: Dict[str, Any], user_id: str = Depends(get_user_id)):
        """Update segment thresholds; omitted keys keep their current value."""
        settings = SegmentSettings.from_mapping(payload, defaults=settings_store.get(user_id))
        settings_store.save(user_id, settings)
        return {"message": "Settings saved.", "settings": settings.to_dict()}

    @app.get("/history")
    async def list_history(user_id: str = Depends(get_user_id)):
        """Most recent stored analyses, newest first."""
        return [entry.to_dict() for entry in history.list(user_id)]

    @app.get("/history/{history_id}")
    async def get_history(history_id: int, user_id: str = Depends(get_user_id)):
        """Stored payload of one analysis."""
        try:
            return history.get(user_id, history_id)
        except HistoryNotFoundError:
            raise HTTPException(status_code=404, detail="History not found.")

    @app.post("/history", status_code=201)
    async def create_history(payload: HistoryCreate, user_id: str = Depends(get_user_id)):
        """Store an analysis snapshot."""
        AnalysisSnapshot.from_dict(payload.segmented_data)
        history_id = history.save(
            user_id, payload.file_name, payload.analysis_date, payload.segmented_data
        )
        return {"message": "History saved.", "id": history_id}

    @app.delete("/history")
    async def clear_history(user_id: str = Depends(get_user_id)):
        """Delete every stored analysis of the caller."""
        removed = history.clear(user_id)
        return {"message": "History cleared.", "removed": removed}

    @app.post("/history/{history_id}/compare")
    async def compare_history(
        history_id: int,
        request: CompareRequest,
        user_id: str = Depends(get_user_id)
    ):
        """KPI deltas (percent) of the current snapshot against a stored one."""
        try:
            historical = history.get_snapshot(user_id, history_id)
        except HistoryNotFoundError:
            raise HTTPException(status_code=404, detail="History not found.")

        current = AnalysisSnapshot.from_dict(request.segmented_data)
        return analyzer.compare(current, historical).to_dict()

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
