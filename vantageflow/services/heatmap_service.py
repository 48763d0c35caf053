import calendar
import logging
from collections.abc import Iterable
from collections.abc import Mapping
from dataclasses import dataclass
from dataclasses import field
from datetime import MAXYEAR
from datetime import MINYEAR
from datetime import date
from datetime import timedelta


logger = logging.getLogger(__name__)

VIEW_MODES = ("week", "month", "quarter", "year", "range")
PAGED_VIEWS = frozenset({"week", "month"})
MONTH_NAMES = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)

ONE_DAY = timedelta(days=1)


@dataclass(frozen=True)
class TaskDetail:
    """Task shown alongside a due or overdue day."""

    project_name: str
    section_name: str
    task_name: str
    assignees: tuple[str, ...] = ()


@dataclass(frozen=True)
class DatedObservation:
    """Single numeric observation attributed to a calendar day."""

    day: date
    value: int
    tasks: tuple[TaskDetail, ...] = ()


@dataclass
class DayEntry:
    """Aggregated value and task details for one day of one stream."""

    value: int = 0
    tasks: list[TaskDetail] = field(default_factory=list)


DayBucket = dict[date, DayEntry]


@dataclass(frozen=True)
class StreakStats:
    total: int
    current_streak: int
    longest_streak: int


@dataclass(frozen=True)
class DayCell:
    """One rendered day of a grid window.

    Values are already masked by time orientation: future days only carry
    the due stream, past days and today only carry activity and overdue.
    Out-of-range padding cells carry their real date and zero values.
    """

    day: date
    value: int
    due_value: int
    overdue_value: int
    level: int
    due_level: int
    overdue_level: int
    due_tasks: tuple[TaskDetail, ...]
    overdue_tasks: tuple[TaskDetail, ...]
    is_today: bool
    is_future: bool
    is_out_of_range: bool = False

    @property
    def weekday(self) -> int:
        """Day of week with Sunday as 0."""

        return week_day_index(self.day)

    @property
    def dominant_stream(self) -> str | None:
        """Stream a renderer should colour the cell by; overdue wins."""

        if self.is_out_of_range:
            return None
        if not self.is_future and self.overdue_value > 0:
            return "overdue"
        if not self.is_future and self.value > 0:
            return "activity"
        if self.is_future and self.due_value > 0:
            return "due"
        return None


@dataclass(frozen=True)
class GridPartition:
    kind: str
    label: str
    start: date
    cells: tuple[DayCell, ...]


@dataclass(frozen=True)
class GridWindow:
    view: str
    label: str
    start: date
    end: date
    partitions: tuple[GridPartition, ...]
    max_value: int
    max_due_value: int
    max_overdue_value: int

    @property
    def cells(self) -> list[DayCell]:
        return [cell for partition in self.partitions for cell in partition.cells]

    @property
    def in_range_cells(self) -> list[DayCell]:
        return [cell for cell in self.cells if not cell.is_out_of_range]


@dataclass(frozen=True)
class HeatmapResult:
    stats: StreakStats
    window: GridWindow


def week_day_index(day: date) -> int:
    """Return weekday index where Sunday is 0 and Saturday is 6."""

    return (day.weekday() + 1) % 7


def shift_day(day: date, days: int) -> date:
    """Move day by days, clamped to the representable date range."""

    ordinal = day.toordinal() + days
    return date.fromordinal(min(max(ordinal, 1), date.max.toordinal()))


def start_of_week(day: date) -> date:
    return shift_day(day, -week_day_index(day))


def format_day(day: date) -> str:
    return f"{MONTH_NAMES[day.month - 1]} {day.day}, {day.year}"


def format_month(year: int, month: int) -> str:
    return f"{MONTH_NAMES[month - 1]} {year}"


def bucket_observations(observations: Iterable[DatedObservation]) -> DayBucket:
    """Sum observations per day and concatenate their task details.

    The result is sparse: only days present in the input get a key.
    """

    bucket: DayBucket = {}
    for observation in observations:
        entry = bucket.setdefault(observation.day, DayEntry())
        entry.value += observation.value
        entry.tasks.extend(observation.tasks)
    return bucket


def _is_active(bucket: Mapping[date, DayEntry], day: date) -> bool:
    entry = bucket.get(day)
    return entry is not None and entry.value > 0


def current_streak(activity: Mapping[date, DayEntry], today: date) -> int:
    """Count consecutive active days ending today.

    A day without activity yet does not break the streak: counting then
    starts from yesterday.
    """

    check_day = today
    if not _is_active(activity, check_day):
        if check_day == date.min:
            return 0
        check_day -= ONE_DAY

    streak = 0
    while _is_active(activity, check_day):
        streak += 1
        if check_day == date.min:
            break
        check_day -= ONE_DAY
    return streak


def longest_streak(activity: Mapping[date, DayEntry]) -> int:
    active_days = sorted(day for day, entry in activity.items() if entry.value > 0)
    if not active_days:
        return 0

    longest = 1
    running = 1
    for previous, current in zip(active_days, active_days[1:]):
        if (current - previous).days == 1:
            running += 1
            longest = max(longest, running)
        else:
            running = 1
    return longest


def compute_stats(activity: Mapping[date, DayEntry], today: date) -> StreakStats:
    """Compute totals and streaks over the past-activity stream only."""

    return StreakStats(
        total=sum(entry.value for entry in activity.values()),
        current_streak=current_streak(activity, today),
        longest_streak=longest_streak(activity),
    )


def intensity_level(value: int, max_value: int) -> int:
    """Map a value to a level in range 0..4 relative to max_value."""

    if value <= 0 or max_value <= 0:
        return 0

    ratio = value / max_value
    if ratio <= 0.25:
        return 1
    if ratio <= 0.50:
        return 2
    if ratio <= 0.75:
        return 3
    return 4


def _add_months(year: int, month: int, offset: int) -> tuple[int, int]:
    shifted_year, zero_based_month = divmod(year * 12 + month - 1 + offset, 12)
    if not MINYEAR <= shifted_year <= MAXYEAR:
        raise OverflowError("month offset out of range")
    return shifted_year, zero_based_month + 1


def _month_end(year: int, month: int) -> date:
    return date(year, month, calendar.monthrange(year, month)[1])


def resolve_window_span(
    view: str,
    today: date,
    offset: int = 0,
    start: date | None = None,
    end: date | None = None,
) -> tuple[date, date, str]:
    """Return first day, last day and label of the window for view.

    Raises:
        ValueError: If view is unknown or a range view lacks its bounds.
        OverflowError: If an offset moves the window past the date range.
    """

    if view == "week":
        first_ordinal = start_of_week(today).toordinal() + offset * 7
        if not 1 <= first_ordinal <= date.max.toordinal():
            raise OverflowError("week offset out of range")
        first = date.fromordinal(first_ordinal)
        last = shift_day(first, 6)
        label = (
            f"{MONTH_NAMES[first.month - 1]} {first.day} - "
            f"{MONTH_NAMES[last.month - 1]} {last.day}, {last.year}"
        )
        return first, last, label

    if view == "month":
        year, month = _add_months(today.year, today.month, offset)
        return date(year, month, 1), _month_end(year, month), format_month(year, month)

    if view == "quarter":
        quarter = (today.month - 1) // 3
        first_month = quarter * 3 + 1
        return (
            date(today.year, first_month, 1),
            _month_end(today.year, first_month + 2),
            f"Q{quarter + 1} {today.year}",
        )

    if view == "year":
        return date(today.year, 1, 1), date(today.year, 12, 31), str(today.year)

    if view == "range":
        if start is None or end is None:
            raise ValueError("range view requires both start and end dates")
        return start, end, f"{format_day(start)} - {format_day(end)}"

    raise ValueError(f"unknown view mode: {view}")


def _iter_days(first: date, last: date) -> Iterable[date]:
    for index in range((last - first).days + 1):
        yield first + timedelta(days=index)


def _layout(view: str, first: date, last: date) -> list[tuple[str, str, list[date]]]:
    """Split the window into (kind, label, days) partitions.

    Month view gets Sunday-start weeks padded with neighbouring days; the
    other multi-month views get one partition per calendar month.
    """

    if first > last:
        return []

    if view == "week":
        week_label = resolve_window_span("week", first)[2]
        return [("week", week_label, list(_iter_days(first, last)))]

    if view == "month":
        padded_first = start_of_week(first)
        padded_last = shift_day(last, 6 - week_day_index(last))
        padded_days = list(_iter_days(padded_first, padded_last))
        weeks = []
        for index in range(0, len(padded_days), 7):
            week_days = padded_days[index:index + 7]
            weeks.append(("week", resolve_window_span("week", week_days[0])[2], week_days))
        return weeks

    months: dict[tuple[int, int], list[date]] = {}
    for day in _iter_days(first, last):
        months.setdefault((day.year, day.month), []).append(day)
    return [
        ("month", format_month(year, month), days)
        for (year, month), days in months.items()
    ]


def build_grid_window(
    view: str,
    today: date,
    activity: Mapping[date, DayEntry],
    due: Mapping[date, DayEntry],
    overdue: Mapping[date, DayEntry],
    offset: int = 0,
    start: date | None = None,
    end: date | None = None,
) -> GridWindow:
    """Lay out the day cells of a heatmap window with per-stream levels.

    Offsets only apply to week and month views. A range whose end is before
    its start, or an offset paging past the representable dates, produces a
    window without partitions.
    """

    if view not in PAGED_VIEWS:
        offset = 0

    try:
        first, last, label = resolve_window_span(view, today, offset, start, end)
    except OverflowError:
        logger.debug("Offset %d pages %s view out of range", offset, view)
        return GridWindow(
            view=view,
            label="",
            start=today,
            end=today,
            partitions=(),
            max_value=0,
            max_due_value=0,
            max_overdue_value=0,
        )
    layout = _layout(view, first, last)

    empty = DayEntry()
    masked: dict[date, tuple[int, int, int, list[TaskDetail], list[TaskDetail]]] = {}
    for _, _, days in layout:
        for day in days:
            if day < first or day > last:
                continue
            if day > today:
                due_entry = due.get(day, empty)
                masked[day] = (0, due_entry.value, 0, due_entry.tasks, [])
            else:
                overdue_entry = overdue.get(day, empty)
                masked[day] = (
                    activity.get(day, empty).value,
                    0,
                    overdue_entry.value,
                    [],
                    overdue_entry.tasks,
                )

    max_value = max((values[0] for values in masked.values()), default=0)
    max_due_value = max((values[1] for values in masked.values()), default=0)
    max_overdue_value = max((values[2] for values in masked.values()), default=0)

    partitions = []
    for kind, partition_label, days in layout:
        cells = []
        for day in days:
            values = masked.get(day)
            if values is None:
                cells.append(
                    DayCell(
                        day=day,
                        value=0,
                        due_value=0,
                        overdue_value=0,
                        level=0,
                        due_level=0,
                        overdue_level=0,
                        due_tasks=(),
                        overdue_tasks=(),
                        is_today=False,
                        is_future=False,
                        is_out_of_range=True,
                    )
                )
                continue

            value, due_value, overdue_value, due_tasks, overdue_tasks = values
            cells.append(
                DayCell(
                    day=day,
                    value=value,
                    due_value=due_value,
                    overdue_value=overdue_value,
                    level=intensity_level(value, max_value),
                    due_level=intensity_level(due_value, max_due_value),
                    overdue_level=intensity_level(overdue_value, max_overdue_value),
                    due_tasks=tuple(due_tasks),
                    overdue_tasks=tuple(overdue_tasks),
                    is_today=day == today,
                    is_future=day > today,
                )
            )
        partitions.append(
            GridPartition(
                kind=kind, label=partition_label, start=days[0], cells=tuple(cells)
            )
        )

    logger.debug(
        "Built %s heatmap window %s..%s with %d partitions",
        view,
        first.isoformat(),
        last.isoformat(),
        len(partitions),
    )
    return GridWindow(
        view=view,
        label=label,
        start=first,
        end=last,
        partitions=tuple(partitions),
        max_value=max_value,
        max_due_value=max_due_value,
        max_overdue_value=max_overdue_value,
    )


def build_heatmap(
    activity: Iterable[DatedObservation],
    due: Iterable[DatedObservation],
    overdue: Iterable[DatedObservation],
    view: str,
    today: date,
    offset: int = 0,
    start: date | None = None,
    end: date | None = None,
) -> HeatmapResult:
    """Bucket three observation streams and build stats plus grid window."""

    activity_bucket = bucket_observations(activity)
    due_bucket = bucket_observations(due)
    overdue_bucket = bucket_observations(overdue)

    return HeatmapResult(
        stats=compute_stats(activity_bucket, today),
        window=build_grid_window(
            view,
            today,
            activity_bucket,
            due_bucket,
            overdue_bucket,
            offset=offset,
            start=start,
            end=end,
        ),
    )
