"""
Feature tasks and their dependency graph.

Task ids are T1, T2, ... assigned from the list length at creation.
"""

from dataclasses import dataclass, field

from sdlc.lib.errors import TaskNotFound
from sdlc.lib.timeutil import now_iso
from sdlc.lib.types import TaskStatus, parse_task_status


@dataclass
class Task:
    id: str
    title: str
    status: TaskStatus = TaskStatus.PENDING
    depends_on: list[str] = field(default_factory=list)
    blocker: str | None = None
    created_at: str = field(default_factory=now_iso)
    started_at: str | None = None
    completed_at: str | None = None

    def is_open(self) -> bool:
        return self.status != TaskStatus.COMPLETED

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "status": self.status.value,
            "depends_on": list(self.depends_on),
            "blocker": self.blocker,
            "created_at": self.created_at,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Task":
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            status=parse_task_status(data.get("status", "pending")),
            depends_on=list(data.get("depends_on") or []),
            blocker=data.get("blocker"),
            created_at=data.get("created_at") or now_iso(),
            started_at=data.get("started_at"),
            completed_at=data.get("completed_at"),
        )


def _find(tasks: list[Task], task_id: str) -> Task:
    for task in tasks:
        if task.id == task_id:
            return task
    raise TaskNotFound(task_id)


def add_task(tasks: list[Task], title: str, depends_on: list[str] | None = None) -> str:
    """Append a task and return its id."""
    task_id = f"T{len(tasks) + 1}"
    tasks.append(Task(id=task_id, title=title, depends_on=list(depends_on or [])))
    return task_id


def start_task(tasks: list[Task], task_id: str) -> None:
    task = _find(tasks, task_id)
    task.status = TaskStatus.IN_PROGRESS
    task.started_at = now_iso()


def complete_task(tasks: list[Task], task_id: str) -> None:
    task = _find(tasks, task_id)
    task.status = TaskStatus.COMPLETED
    task.completed_at = now_iso()
    task.blocker = None


def block_task(tasks: list[Task], task_id: str, reason: str) -> None:
    task = _find(tasks, task_id)
    task.status = TaskStatus.BLOCKED
    task.blocker = reason


def next_task(tasks: list[Task]) -> Task | None:
    """First pending or in-progress task whose dependencies are all completed."""
    completed = {t.id for t in tasks if t.status == TaskStatus.COMPLETED}
    for task in tasks:
        if task.status not in (TaskStatus.PENDING, TaskStatus.IN_PROGRESS):
            continue
        if all(dep in completed for dep in task.depends_on):
            return task
    return None


def summarize_tasks(tasks: list[Task]) -> str:
    done = sum(1 for t in tasks if t.status == TaskStatus.COMPLETED)
    in_progress = sum(1 for t in tasks if t.status == TaskStatus.IN_PROGRESS)
    blocked = sum(1 for t in tasks if t.status == TaskStatus.BLOCKED)
    return f"{done}/{len(tasks)} completed, {in_progress} in progress, {blocked} blocked"
