"""FastAPI entrypoint."""

from __future__ import annotations

import logging

from fastapi import Depends, FastAPI, File, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from planner.service import PlannerService
from wayline.domain.presets import get_drone_ids, get_drone_preset

from .config import settings
from .deps import get_planner_service
from .logging_setup import setup_logging
from .schemas import DroneItem, ExportRequest, ImportResponse, PlanRequest, PlanResponse

KMZ_MEDIA_TYPE = "application/vnd.google-earth.kmz"

setup_logging(settings.LOG_LEVEL, to_file=settings.LOG_TO_FILE)
logger = logging.getLogger(__name__)

app = FastAPI(title="Wayline Planner API", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
)


def _download_name(filename: str) -> str:
    """KMZ name for the Content-Disposition header."""
    from wayline.services.exporter import sanitize_filename

    try:
        return f"{sanitize_filename(filename)}.kmz"
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.get("/health")
def health() -> dict[str, str]:
    """Liveness endpoint."""
    return {"status": "ok"}


@app.get("/drones", response_model=list[DroneItem])
def list_drones() -> list[DroneItem]:
    """Drone presets known to the planner."""
    items: list[DroneItem] = []
    for drone_id in get_drone_ids():
        p = get_drone_preset(drone_id)
        items.append(
            DroneItem(
                id=drone_id,
                name=p.name,
                hfov=p.hfov,
                photo_interval=p.photo_interval,
                max_flight_time=p.max_flight_time,
                is_default=p.is_default,
            )
        )
    return items


@app.post("/planner/plan", response_model=PlanResponse)
def plan(
    payload: PlanRequest,
    planner: PlannerService = Depends(get_planner_service),
) -> PlanResponse:
    """Generate waypoints for a drawn shape."""
    logs: list[str] = []

    try:
        result = planner.plan(payload.shape, payload.settings, log_fn=logs.append)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Planning failed")
        raise HTTPException(status_code=500, detail=f"Planner error: {exc}") from exc

    return PlanResponse(plan=result, logs=logs)


@app.post("/missions/export")
def export_mission(
    payload: ExportRequest,
    planner: PlannerService = Depends(get_planner_service),
) -> Response:
    """Return waypoints packed as a DJI KMZ download."""
    name = _download_name(payload.filename)
    try:
        data = planner.export_kmz(
            payload.waypoints,
            payload.settings,
            shape=payload.shape,
            include_session=payload.include_session,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Export failed")
        raise HTTPException(status_code=500, detail=f"Planner error: {exc}") from exc

    logger.info("Exported %s (%d waypoints, %d bytes)", name, len(payload.waypoints), len(data))
    return Response(
        content=data,
        media_type=KMZ_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{name}"'},
    )


@app.post("/missions/import", response_model=ImportResponse)
async def import_mission(
    file: UploadFile = File(...),
    planner: PlannerService = Depends(get_planner_service),
) -> ImportResponse:
    """Parse an uploaded KMZ/KML mission."""
    if not file.filename:
        raise HTTPException(status_code=400, detail="File name is required")

    logs: list[str] = []
    try:
        raw = await file.read()
        if len(raw) > settings.MAX_UPLOAD_MB * 1024 * 1024:
            raise HTTPException(status_code=413, detail=f"File exceeds {settings.MAX_UPLOAD_MB} MB")
        mission = planner.import_mission(raw, file.filename, log_fn=logs.append)
    except HTTPException:
        raise
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Import failed")
        raise HTTPException(status_code=500, detail=f"Planner error: {exc}") from exc
    finally:
        await file.close()

    return ImportResponse(mission=mission, logs=logs)
