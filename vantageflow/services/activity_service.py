import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from datetime import datetime
from datetime import UTC
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.orm import selectinload

from vantageflow.models import Achievement
from vantageflow.models import ProjectTask
from vantageflow.services.heatmap_service import DatedObservation
from vantageflow.services.heatmap_service import TaskDetail


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActivityStreams:
    """Observation streams feeding the activity heatmap."""

    activity: list[DatedObservation]
    due: list[DatedObservation]
    overdue: list[DatedObservation]


def local_today(timezone: str) -> date:
    """Return the current date in the given IANA timezone."""

    return datetime.now(ZoneInfo(timezone)).date()


def achievement_observations(
    achievements: Iterable[Achievement], timezone: str
) -> list[DatedObservation]:
    """Turn awarded points into past-activity observations.

    Timestamps are converted to `timezone` before taking the day; naive
    timestamps are treated as UTC.
    """

    zone = ZoneInfo(timezone)
    observations: list[DatedObservation] = []
    for achievement in achievements:
        awarded_at = achievement.awarded_at
        if awarded_at.tzinfo is None:
            awarded_at = awarded_at.replace(tzinfo=UTC)
        observations.append(
            DatedObservation(
                day=awarded_at.astimezone(zone).date(),
                value=achievement.points or 0,
            )
        )
    return observations


def task_observations(
    tasks: Iterable[ProjectTask], today: date
) -> tuple[list[DatedObservation], list[DatedObservation]]:
    """Split incomplete dated tasks into due and overdue observations.

    Tasks due after `today` are due, tasks due on or before it are overdue.
    Completed tasks and tasks without a due date are skipped.
    """

    due: list[DatedObservation] = []
    overdue: list[DatedObservation] = []
    for task in tasks:
        if task.is_complete or task.due_date is None:
            continue

        detail = TaskDetail(
            project_name=task.project.name,
            section_name=task.section_name,
            task_name=task.name,
            assignees=tuple(task.assignees or ()),
        )
        observation = DatedObservation(day=task.due_date, value=1, tasks=(detail,))
        if task.due_date > today:
            due.append(observation)
        else:
            overdue.append(observation)
    return due, overdue


def collect_activity_streams(
    db: Session,
    today: date,
    timezone: str,
    project_id: int | None = None,
) -> ActivityStreams:
    """Load achievements and tasks from the store as heatmap streams."""

    achievement_query = select(Achievement)
    task_query = select(ProjectTask).options(selectinload(ProjectTask.project))
    if project_id is not None:
        achievement_query = achievement_query.where(
            Achievement.project_id == project_id
        )
        task_query = task_query.where(ProjectTask.project_id == project_id)

    achievements = db.scalars(achievement_query).all()
    tasks = db.scalars(task_query).all()

    due, overdue = task_observations(tasks, today)
    streams = ActivityStreams(
        activity=achievement_observations(achievements, timezone),
        due=due,
        overdue=overdue,
    )
    logger.debug(
        "Collected %d activity, %d due and %d overdue observations (project=%s)",
        len(streams.activity),
        len(streams.due),
        len(streams.overdue),
        project_id,
    )
    return streams
