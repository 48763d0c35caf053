import logging

from fastapi import APIRouter
from fastapi import Depends
from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from vantageflow.api.schemas.projects import AchievementCreate
from vantageflow.api.schemas.projects import ProjectCreate
from vantageflow.api.schemas.projects import TaskCreate
from vantageflow.db import get_db
from vantageflow.models import Achievement
from vantageflow.models import Project
from vantageflow.models import ProjectTask


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects")


def _get_project_or_404(db: Session, project_id: int) -> Project:
    project = db.get(Project, project_id)
    if project is None:
        raise HTTPException(status_code=404, detail="project not found")
    return project


@router.post("", status_code=201)
def create_project(
    payload: ProjectCreate, db: Session = Depends(get_db)
) -> dict[str, str | int]:
    name = payload.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="name cannot be empty")

    existing_project = db.scalar(select(Project).where(Project.name == name))
    if existing_project:
        raise HTTPException(status_code=409, detail="project already exists")

    project = Project(name=name)
    db.add(project)
    db.commit()
    db.refresh(project)
    logger.info("Created project %s (%s)", project.id, project.name)
    return {"id": project.id, "name": project.name}


@router.get("")
def list_projects(db: Session = Depends(get_db)) -> list[dict[str, str | int]]:
    projects = db.scalars(select(Project).order_by(Project.name.asc())).all()
    return [{"id": project.id, "name": project.name} for project in projects]


@router.post("/{project_id}/tasks", status_code=201)
def create_task(
    project_id: int,
    payload: TaskCreate,
    db: Session = Depends(get_db),
) -> dict[str, object]:
    project = _get_project_or_404(db, project_id)

    task = ProjectTask(
        project_id=project.id,
        section_name=payload.section_name,
        name=payload.name,
        status=payload.status,
        due_date=payload.due_date,
        assignees=[name for name in payload.assignees if name.strip()],
    )
    db.add(task)
    db.commit()
    db.refresh(task)
    logger.info("Added task %s to project %s", task.id, project.id)
    return {
        "id": task.id,
        "project_id": project.id,
        "name": task.name,
        "status": task.status,
        "due_date": task.due_date.isoformat() if task.due_date else None,
    }


@router.post("/{project_id}/achievements", status_code=201)
def create_achievement(
    project_id: int,
    payload: AchievementCreate,
    db: Session = Depends(get_db),
) -> dict[str, str | int]:
    project = _get_project_or_404(db, project_id)

    achievement = Achievement(
        project_id=project.id,
        user_name=payload.user_name,
        points=payload.points,
        awarded_at=payload.awarded_at,
    )
    db.add(achievement)
    db.commit()
    db.refresh(achievement)
    logger.info(
        "Recorded %d points for %s on project %s",
        achievement.points,
        achievement.user_name,
        project.id,
    )
    return {
        "id": achievement.id,
        "project_id": project.id,
        "user_name": achievement.user_name,
        "points": achievement.points,
    }
