from collections.abc import Generator
from datetime import date
from datetime import datetime
from datetime import UTC

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from vantageflow.db import Base
from vantageflow.models import Achievement
from vantageflow.models import Project
from vantageflow.models import ProjectTask
from vantageflow.services.activity_service import achievement_observations
from vantageflow.services.activity_service import collect_activity_streams
from vantageflow.services.activity_service import task_observations
from vantageflow.services.heatmap_service import TaskDetail


TODAY = date(2025, 6, 10)


@pytest.fixture
def db_session() -> Generator[Session, None, None]:
    test_engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    session = sessionmaker(bind=test_engine, autoflush=False, autocommit=False)()
    try:
        yield session
    finally:
        session.close()


def make_task(
    project: Project,
    name: str,
    due_date: date | None,
    status: str = "0%",
    assignees: list[str] | None = None,
) -> ProjectTask:
    return ProjectTask(
        project=project,
        section_name="Build",
        name=name,
        status=status,
        due_date=due_date,
        assignees=assignees or [],
    )


def test_task_observations_split_by_due_date() -> None:
    project = Project(name="Apollo")
    tasks = [
        make_task(project, "Ship API", date(2025, 6, 12), assignees=["Ada"]),
        make_task(project, "Write docs", date(2025, 6, 10)),
        make_task(project, "Fix login", date(2025, 6, 2), status="At Risk"),
    ]

    due, overdue = task_observations(tasks, TODAY)

    assert [(item.day, item.value) for item in due] == [(date(2025, 6, 12), 1)]
    assert due[0].tasks == (TaskDetail("Apollo", "Build", "Ship API", ("Ada",)),)
    assert [item.day for item in overdue] == [date(2025, 6, 10), date(2025, 6, 2)]


def test_task_observations_skip_completed_and_undated_tasks() -> None:
    project = Project(name="Apollo")
    tasks = [
        make_task(project, "Done", date(2025, 6, 1), status="100%"),
        make_task(project, "Also done", date(2025, 6, 20), status="Completed"),
        make_task(project, "Someday", None),
    ]

    assert task_observations(tasks, TODAY) == ([], [])


def test_achievement_observations_use_configured_timezone() -> None:
    achievements = [
        Achievement(
            user_name="Ada",
            points=5,
            awarded_at=datetime(2025, 6, 9, 23, 30, tzinfo=UTC),
        ),
        Achievement(user_name="Grace", points=2, awarded_at=datetime(2025, 6, 9, 8, 0)),
    ]

    in_tokyo = achievement_observations(achievements, "Asia/Tokyo")
    in_utc = achievement_observations(achievements, "UTC")

    assert [(item.day, item.value) for item in in_tokyo] == [
        (date(2025, 6, 10), 5),
        (date(2025, 6, 9), 2),
    ]
    assert [item.day for item in in_utc] == [date(2025, 6, 9), date(2025, 6, 9)]


def test_collect_activity_streams_filters_by_project(db_session: Session) -> None:
    apollo = Project(name="Apollo")
    gemini = Project(name="Gemini")
    db_session.add_all([apollo, gemini])
    db_session.flush()

    db_session.add_all(
        [
            make_task(apollo, "Ship API", date(2025, 6, 12)),
            make_task(gemini, "Launch", date(2025, 6, 5)),
            Achievement(
                project_id=apollo.id,
                user_name="Ada",
                points=3,
                awarded_at=datetime(2025, 6, 9, 12, 0, tzinfo=UTC),
            ),
            Achievement(
                project_id=gemini.id,
                user_name="Grace",
                points=4,
                awarded_at=datetime(2025, 6, 8, 12, 0, tzinfo=UTC),
            ),
        ]
    )
    db_session.commit()

    everything = collect_activity_streams(db_session, today=TODAY, timezone="UTC")
    apollo_only = collect_activity_streams(
        db_session, today=TODAY, timezone="UTC", project_id=apollo.id
    )

    assert sorted(item.value for item in everything.activity) == [3, 4]
    assert len(everything.due) == 1
    assert len(everything.overdue) == 1
    assert [(item.day, item.value) for item in apollo_only.activity] == [
        (date(2025, 6, 9), 3)
    ]
    assert [item.tasks[0].project_name for item in apollo_only.due] == ["Apollo"]
    assert apollo_only.overdue == []
