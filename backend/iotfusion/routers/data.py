import logging
import platform
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Request

from ..config import API_VERSION, Settings
from ..data_service import DataService, RecordValidationError, process_visualization_data, validate_records
from ..deps import get_data_service, get_settings
from ..errors import UpstreamError
from ..schemas import VisualizeIn

router = APIRouter(prefix="/api", tags=["data"])
logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/data")
async def get_latest_data(service: DataService = Depends(get_data_service)):
    start = time.perf_counter()
    latest = await service.get_latest_data()

    metadata = {
        "totalRecords": len(latest),
        "source": "Sigfox IoT Device",
        "apiVersion": API_VERSION,
        "timestamp": _now_iso(),
    }
    stats = service.cache_stats()
    if stats["hasData"]:
        metadata["cache"] = {"used": stats["isValid"], "lastUpdated": stats["timestamp"]}

    logger.info("GET /api/data returned %d records in %.0fms", len(latest), (time.perf_counter() - start) * 1000)
    return {
        "success": True,
        "message": f"Successfully retrieved {len(latest)} latest IoT records",
        "data": latest,
        "metadata": metadata,
    }


@router.post("/visualize")
def visualize(payload: VisualizeIn):
    records = payload.data
    if records is None:
        raise HTTPException(status_code=400, detail="Data field is required in request body")
    if not isinstance(records, list):
        raise HTTPException(status_code=400, detail="Data must be an array of IoT records")
    if not records:
        raise HTTPException(status_code=400, detail="Data array cannot be empty")

    try:
        validate_records(records)
    except RecordValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    logger.info("Processing %d records for visualization (source %s)", len(records), payload.source)
    result = process_visualization_data(records)
    result["metadata"] = {
        "source": payload.source,
        "inputRecords": len(records),
        "outputRecords": len(result["data"]),
        "processingOptions": payload.options,
        "apiVersion": API_VERSION,
        "processedAt": _now_iso(),
    }
    return result


@router.get("/status")
async def system_status(
    request: Request,
    service: DataService = Depends(get_data_service),
    settings: Settings = Depends(get_settings),
):
    external_status = "unknown"
    latency_ms = None
    try:
        start = time.perf_counter()
        await service.fetch_external()
        latency_ms = round((time.perf_counter() - start) * 1000)
        external_status = "healthy"
    except UpstreamError as exc:
        external_status = "unhealthy"
        logger.warning("External API health check failed: %s", exc.message)

    stats = service.cache_stats()
    return {
        "success": True,
        "message": "System status retrieved successfully",
        "status": {
            "api": {
                "status": "healthy",
                "version": API_VERSION,
                "uptime": round(time.monotonic() - request.app.state.started_at, 3),
                "timestamp": _now_iso(),
            },
            "cache": {
                "hasData": stats["hasData"],
                "isValid": stats["isValid"],
                "recordCount": stats["recordCount"],
                "lastUpdated": stats["timestamp"],
            },
            "externalApi": {
                "status": external_status,
                "latency": latency_ms,
                "endpoint": settings.sigfox_endpoint,
            },
            "system": {
                "pythonVersion": platform.python_version(),
                "platform": platform.system().lower(),
                "environment": settings.environment,
            },
        },
    }


@router.post("/cache/clear")
def clear_cache(service: DataService = Depends(get_data_service)):
    service.clear_cache()
    return {"success": True, "message": "Cache cleared successfully", "timestamp": _now_iso()}
