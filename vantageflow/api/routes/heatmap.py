from datetime import date

from fastapi import APIRouter
from fastapi import Depends
from fastapi import HTTPException
from fastapi import Query
from sqlalchemy.orm import Session

from vantageflow.api.schemas.heatmap import HeatmapComputeRequest
from vantageflow.api.schemas.heatmap import HeatmapResponse
from vantageflow.api.schemas.heatmap import MAX_PAGE_OFFSET
from vantageflow.api.schemas.heatmap import ViewMode
from vantageflow.api.schemas.heatmap import heatmap_response
from vantageflow.db import get_db
from vantageflow.models import Project
from vantageflow.services.activity_service import collect_activity_streams
from vantageflow.services.activity_service import local_today
from vantageflow.services.heatmap_service import build_heatmap
from vantageflow.settings import Settings


router = APIRouter()
settings = Settings()


def validate_range_bounds(
    view: str,
    start: date | None,
    end: date | None,
    start_name: str = "from",
    end_name: str = "to",
) -> None:
    """Reject range requests with missing, inverted or oversized bounds.

    Raises:
        HTTPException: If a range view lacks a bound, ends before it starts,
            or spans more than `max_range_days` days.
    """

    if view != "range":
        return

    if start is None or end is None:
        raise HTTPException(
            status_code=400,
            detail=f"{start_name} and {end_name} must be provided together",
        )

    if start > end:
        raise HTTPException(
            status_code=400,
            detail=f"{start_name} must be before or equal to {end_name}",
        )

    if (end - start).days + 1 > settings.max_range_days:
        raise HTTPException(
            status_code=400,
            detail=f"range cannot exceed {settings.max_range_days} days",
        )


def _store_heatmap(
    db: Session,
    view: ViewMode | None,
    offset: int,
    from_date: date | None,
    to_date: date | None,
    today: date | None,
    project_id: int | None = None,
) -> HeatmapResponse:
    resolved_view = view or settings.default_view
    validate_range_bounds(resolved_view, from_date, to_date)
    resolved_today = today or local_today(settings.timezone)

    streams = collect_activity_streams(
        db,
        today=resolved_today,
        timezone=settings.timezone,
        project_id=project_id,
    )
    result = build_heatmap(
        streams.activity,
        streams.due,
        streams.overdue,
        view=resolved_view,
        today=resolved_today,
        offset=offset,
        start=from_date,
        end=to_date,
    )
    return heatmap_response(result, resolved_today)


@router.post("/heatmap/compute")
def compute_heatmap(payload: HeatmapComputeRequest) -> HeatmapResponse:
    """Build a heatmap from caller-supplied observation streams."""

    validate_range_bounds(
        payload.view, payload.start, payload.end, start_name="start", end_name="end"
    )
    today = payload.today or local_today(settings.timezone)

    result = build_heatmap(
        [item.to_observation() for item in payload.activity],
        [item.to_observation() for item in payload.due],
        [item.to_observation() for item in payload.overdue],
        view=payload.view,
        today=today,
        offset=payload.offset,
        start=payload.start,
        end=payload.end,
    )
    return heatmap_response(result, today)


@router.get("/heatmap")
def get_team_heatmap(
    view: ViewMode | None = Query(default=None),
    offset: int = Query(default=0, ge=-MAX_PAGE_OFFSET, le=MAX_PAGE_OFFSET),
    from_date: date | None = Query(default=None, alias="from"),
    to_date: date | None = Query(default=None, alias="to"),
    today: date | None = Query(default=None),
    db: Session = Depends(get_db),
) -> HeatmapResponse:
    """Return the heatmap across every stored project."""

    return _store_heatmap(db, view, offset, from_date, to_date, today)


@router.get("/projects/{project_id}/heatmap")
def get_project_heatmap(
    project_id: int,
    view: ViewMode | None = Query(default=None),
    offset: int = Query(default=0, ge=-MAX_PAGE_OFFSET, le=MAX_PAGE_OFFSET),
    from_date: date | None = Query(default=None, alias="from"),
    to_date: date | None = Query(default=None, alias="to"),
    today: date | None = Query(default=None),
    db: Session = Depends(get_db),
) -> HeatmapResponse:
    """Return the heatmap for a single project."""

    if db.get(Project, project_id) is None:
        raise HTTPException(status_code=404, detail="project not found")

    return _store_heatmap(
        db, view, offset, from_date, to_date, today, project_id=project_id
    )
