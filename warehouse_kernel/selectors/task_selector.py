"""
Module: warehouse_kernel.selectors.task_selector
Responsibility: Task lookups with the Staff visibility rule, plus simple
    completion statistics.
Architecture position: Kernel > Selectors.
"""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import func, select

from warehouse_kernel.domain.dtos import Actor, TaskInfo, TaskStatus, TaskType
from warehouse_kernel.domain.validation import require_choice
from warehouse_kernel.models.task import Task
from warehouse_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class TaskCompletionStats:
    assignee_id: UUID
    completed: int
    average_minutes: float | None


class TaskSelector(BaseSelector[Task]):
    """Staff see only their own tasks; Admin and Manager see all."""

    def get_task(self, task_id: UUID, actor: Actor, include_deleted: bool = False) -> TaskInfo | None:
        query = self._tasks_for(actor, include_deleted).where(Task.id == task_id)
        task = self.session.execute(query).scalar_one_or_none()
        return TaskInfo.from_model(task) if task else None

    def list_tasks(
        self,
        actor: Actor,
        assigned_to_id: UUID | None = None,
        status: TaskStatus | None = None,
        task_type: TaskType | None = None,
        include_deleted: bool = False,
    ) -> list[TaskInfo]:
        query = self._tasks_for(actor, include_deleted)
        if assigned_to_id is not None and not actor.is_staff:
            query = query.where(Task.assigned_to_id == assigned_to_id)
        if status is not None:
            query = query.where(
                Task.status == require_choice(TaskStatus, status, "status").value
            )
        if task_type is not None:
            query = query.where(
                Task.task_type == require_choice(TaskType, task_type, "task_type").value
            )
        query = query.order_by(Task.created_at.desc())
        return [TaskInfo.from_model(t) for t in self.session.execute(query).scalars()]

    def completion_stats(self, assignee_id: UUID) -> TaskCompletionStats:
        completed, average = self.session.execute(
            select(func.count(Task.id), func.avg(Task.completion_duration)).where(
                Task.assigned_to_id == assignee_id,
                Task.status == TaskStatus.COMPLETED.value,
                Task.is_deleted.is_(False),
            )
        ).one()
        return TaskCompletionStats(
            assignee_id=assignee_id,
            completed=completed,
            average_minutes=float(average) if average is not None else None,
        )

    def _tasks_for(self, actor: Actor, include_deleted: bool):
        query = self._live(select(Task), Task, include_deleted)
        if actor.is_staff:
            query = query.where(Task.assigned_to_id == actor.actor_id)
        return query
