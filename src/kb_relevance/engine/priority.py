"""Daily task prioritization from deadline, priority and inactivity signals."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime

from kb_relevance.engine.topk import top_k
from kb_relevance.errors import InputInvalidError
from kb_relevance.models.item import KnowledgeItem, TaskItem, TaskPriority, TaskStatus, ensure_utc
from kb_relevance.models.search import RankedResult

logger = logging.getLogger(__name__)

DEFAULT_FOCUS_COUNT = 3

# (max days until deadline, points), checked in order
DEADLINE_TIERS: tuple[tuple[float, int], ...] = ((2, 50), (7, 30), (30, 10))

PRIORITY_POINTS: dict[TaskPriority, int] = {
    TaskPriority.HIGH: 30,
    TaskPriority.MEDIUM: 15,
    TaskPriority.LOW: 0,
}

INACTIVITY_POINTS_PER_DAY = 2
INACTIVITY_CAP = 20

_SECONDS_PER_DAY = 86400.0


@dataclass(frozen=True)
class TaskScore:
    """Per-factor points for one task."""

    task: TaskItem
    deadline_points: int
    priority_points: int
    inactivity_points: int
    days_until_deadline: float | None
    inactive_seconds: float

    @property
    def total(self) -> int:
        """Unweighted sum of all factors (max 100)."""
        return self.deadline_points + self.priority_points + self.inactivity_points

    @property
    def inactive_days(self) -> int:
        """Whole days since last activity."""
        return int(self.inactive_seconds // _SECONDS_PER_DAY)

    def explain(self) -> str:
        """Name the factors that contributed points."""
        parts: list[str] = []
        if self.deadline_points and self.days_until_deadline is not None:
            parts.append(_describe_deadline(self.days_until_deadline))
        if self.priority_points and self.task.priority is not None:
            parts.append(f"{self.task.priority.value} priority")
        if self.inactivity_points:
            parts.append(f"inactive {_days(self.inactive_days)}")
        return ", ".join(parts) or "no urgency signals"


def _days(n: int) -> str:
    return f"{n} day" if n == 1 else f"{n} days"


def _describe_deadline(days: float) -> str:
    if days < 0:
        return f"overdue by {_days(max(1, round(-days)))}"
    whole = round(days)
    if whole == 0:
        return "due today"
    return f"deadline in {_days(whole)}"


def deadline_points(days_until_deadline: float | None) -> int:
    """Urgency points for a deadline ``days_until_deadline`` days away."""
    if days_until_deadline is None:
        return 0
    for max_days, points in DEADLINE_TIERS:
        if days_until_deadline <= max_days:
            return points
    return 0


def inactivity_points(inactive_days: int) -> int:
    """Two points per whole inactive day, capped."""
    return min(INACTIVITY_CAP, INACTIVITY_POINTS_PER_DAY * max(0, inactive_days))


def score_task(task: TaskItem, now: datetime) -> TaskScore:
    """Score a single task against ``now``."""
    days_until: float | None = None
    if task.deadline is not None:
        days_until = (task.deadline - now).total_seconds() / _SECONDS_PER_DAY

    inactive_seconds = max(0.0, (now - task.activity_anchor).total_seconds())
    priority = PRIORITY_POINTS[task.priority] if task.priority is not None else 0

    return TaskScore(
        task=task,
        deadline_points=deadline_points(days_until),
        priority_points=priority,
        inactivity_points=inactivity_points(int(inactive_seconds // _SECONDS_PER_DAY)),
        days_until_deadline=days_until,
        inactive_seconds=inactive_seconds,
    )


def _priority_key(score: TaskScore) -> tuple[int, float, float, str]:
    deadline = score.days_until_deadline
    return (
        -score.total,
        deadline if deadline is not None else float("inf"),
        -score.inactive_seconds,
        score.task.id,
    )


def daily_priorities(
    tasks: Iterable[KnowledgeItem],
    focus_count: int = DEFAULT_FOCUS_COUNT,
    *,
    now: datetime | None = None,
) -> list[RankedResult]:
    """Pick the top ``focus_count`` open tasks for today.

    Done tasks are skipped. Ties on score go to the closer deadline, then the
    longer-idle task, then the lower id.
    """
    if focus_count < 1:
        raise InputInvalidError(f"focus_count must be at least 1, got {focus_count}")
    now = ensure_utc(now) if now is not None else datetime.now(UTC)

    scores: list[TaskScore] = []
    for task in tasks:
        if not isinstance(task, TaskItem):
            raise InputInvalidError(f"Item {task.id} is a {task.kind}, not a task")
        if task.status == TaskStatus.DONE:
            continue
        scores.append(score_task(task, now))

    selected = top_k(scores, focus_count, key=_priority_key)
    logger.debug("Selected %d of %d eligible tasks", len(selected), len(scores))
    return [
        RankedResult(item=s.task, score=float(s.total), explanation=s.explain())
        for s in selected
    ]
