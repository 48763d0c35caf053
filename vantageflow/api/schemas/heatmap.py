from datetime import date
from typing import Literal

from pydantic import BaseModel
from pydantic import Field

from vantageflow.services.heatmap_service import DatedObservation
from vantageflow.services.heatmap_service import DayCell
from vantageflow.services.heatmap_service import HeatmapResult
from vantageflow.services.heatmap_service import TaskDetail


ViewMode = Literal["week", "month", "quarter", "year", "range"]

# Upper bound for week and month paging offsets.
MAX_PAGE_OFFSET = 5300


class TaskDetailSchema(BaseModel):
    """Task detail attached to due and overdue days."""

    project_name: str
    section_name: str
    task_name: str
    assignees: list[str] = Field(default_factory=list)


class ObservationIn(BaseModel):
    day: date
    value: int = Field(ge=0)
    tasks: list[TaskDetailSchema] = Field(default_factory=list)

    def to_observation(self) -> DatedObservation:
        return DatedObservation(
            day=self.day,
            value=self.value,
            tasks=tuple(
                TaskDetail(
                    project_name=task.project_name,
                    section_name=task.section_name,
                    task_name=task.task_name,
                    assignees=tuple(task.assignees),
                )
                for task in self.tasks
            ),
        )


class HeatmapComputeRequest(BaseModel):
    """Observation streams and view parameters for a stateless heatmap."""

    activity: list[ObservationIn] = Field(default_factory=list)
    due: list[ObservationIn] = Field(default_factory=list)
    overdue: list[ObservationIn] = Field(default_factory=list)
    view: ViewMode = "month"
    offset: int = Field(default=0, ge=-MAX_PAGE_OFFSET, le=MAX_PAGE_OFFSET)
    start: date | None = None
    end: date | None = None
    today: date | None = None


class StreakStatsSchema(BaseModel):
    total: int
    current_streak: int
    longest_streak: int


class HeatmapCell(BaseModel):
    """Single day cell of a heatmap window."""

    date: date
    weekday: int
    value: int
    due_value: int
    overdue_value: int
    level: int
    due_level: int
    overdue_level: int
    due_tasks: list[TaskDetailSchema]
    overdue_tasks: list[TaskDetailSchema]
    is_today: bool
    is_future: bool
    is_out_of_range: bool
    dominant_stream: Literal["activity", "due", "overdue"] | None


class HeatmapPartition(BaseModel):
    """Week or month bucket containing ordered day cells."""

    kind: Literal["week", "month"]
    label: str
    start: date
    days: list[HeatmapCell]


class HeatmapWindow(BaseModel):
    view: ViewMode
    label: str
    start: date
    end: date
    max_value: int
    max_due_value: int
    max_overdue_value: int
    partitions: list[HeatmapPartition]


class HeatmapResponse(BaseModel):
    """Heatmap statistics and grid window payload."""

    today: date
    stats: StreakStatsSchema
    window: HeatmapWindow


def _task_schema(task: TaskDetail) -> TaskDetailSchema:
    return TaskDetailSchema(
        project_name=task.project_name,
        section_name=task.section_name,
        task_name=task.task_name,
        assignees=list(task.assignees),
    )


def _cell_schema(cell: DayCell) -> HeatmapCell:
    return HeatmapCell(
        date=cell.day,
        weekday=cell.weekday,
        value=cell.value,
        due_value=cell.due_value,
        overdue_value=cell.overdue_value,
        level=cell.level,
        due_level=cell.due_level,
        overdue_level=cell.overdue_level,
        due_tasks=[_task_schema(task) for task in cell.due_tasks],
        overdue_tasks=[_task_schema(task) for task in cell.overdue_tasks],
        is_today=cell.is_today,
        is_future=cell.is_future,
        is_out_of_range=cell.is_out_of_range,
        dominant_stream=cell.dominant_stream,
    )


def heatmap_response(result: HeatmapResult, today: date) -> HeatmapResponse:
    """Convert a computed heatmap into its response payload."""

    window = result.window
    return HeatmapResponse(
        today=today,
        stats=StreakStatsSchema(
            total=result.stats.total,
            current_streak=result.stats.current_streak,
            longest_streak=result.stats.longest_streak,
        ),
        window=HeatmapWindow(
            view=window.view,
            label=window.label,
            start=window.start,
            end=window.end,
            max_value=window.max_value,
            max_due_value=window.max_due_value,
            max_overdue_value=window.max_overdue_value,
            partitions=[
                HeatmapPartition(
                    kind=partition.kind,
                    label=partition.label,
                    start=partition.start,
                    days=[_cell_schema(cell) for cell in partition.cells],
                )
                for partition in window.partitions
            ],
        ),
    )
