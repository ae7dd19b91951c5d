"""
TaskService -- picking, packing and receiving work items with time tracking.

Responsibility:
    Creates tasks for active Staff users, moves them through TASK_WORKFLOW,
    reassigns them while open, and soft-deletes them.

Architecture position:
    Kernel > Services.  Never touches stock.

Invariants enforced:
    - Picking and Packing tasks reference a live order; Receiving tasks
      reference a live receiving.
    - Staff actors change only tasks assigned to them.
    - started_at is stamped on the first move to InProgress and never
      overwritten; completion_duration is whole minutes from started_at to
      completed_at.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select

from warehouse_kernel.domain.dtos import (
    ActivityAction,
    ActivityEntity,
    Actor,
    TaskInfo,
    TaskPriority,
    TaskStatus,
    TaskType,
    UserRole,
)
from warehouse_kernel.domain.validation import (
    TASK_DESCRIPTION_MAX,
    TASK_TITLE_MAX,
    TASK_TITLE_MIN,
    optional_text,
    require_choice,
    require_text,
)
from warehouse_kernel.domain.workflow import TASK_WORKFLOW
from warehouse_kernel.exceptions import (
    InvalidAssigneeError,
    MissingRelatedRecordError,
    OrderNotFoundError,
    ReceivingNotFoundError,
    TaskClosedError,
    TaskNotFoundError,
    TaskOwnershipError,
    UserNotFoundError,
)
from warehouse_kernel.logging_config import get_logger
from warehouse_kernel.models.order import Order
from warehouse_kernel.models.receiving import Receiving
from warehouse_kernel.models.task import Task
from warehouse_kernel.models.user import User
from warehouse_kernel.notifications import Events
from warehouse_kernel.services.base import WorkflowService

logger = get_logger("services.task")

_ORDER_TASK_TYPES = frozenset({TaskType.PICKING, TaskType.PACKING})


class TaskService(WorkflowService):
    """Task lifecycle operations."""

    def create_task(
        self,
        title: str,
        task_type: TaskType | str,
        assigned_to_id: UUID,
        actor: Actor,
        priority: TaskPriority | str = TaskPriority.MEDIUM,
        description: str | None = None,
        related_order_id: UUID | None = None,
        related_receiving_id: UUID | None = None,
    ) -> TaskInfo:
        """
        Create a Pending task.

        Raises:
            ValidationError: bad title or description.
            MissingRelatedRecordError: the related record the type needs was
                not given.
            OrderNotFoundError / ReceivingNotFoundError: it was given but is
                missing or deleted.
            UserNotFoundError / InvalidAssigneeError: assignee is not an
                active Staff user.
        """
        title = require_text(title, "title", TASK_TITLE_MIN, TASK_TITLE_MAX)
        description = optional_text(description, "description", TASK_DESCRIPTION_MAX)
        task_type = require_choice(TaskType, task_type, "task_type")
        priority = require_choice(TaskPriority, priority, "priority")
        if task_type in _ORDER_TASK_TYPES and related_order_id is None:
            raise MissingRelatedRecordError(task_type.value, "related_order_id")
        if task_type == TaskType.RECEIVING and related_receiving_id is None:
            raise MissingRelatedRecordError(task_type.value, "related_receiving_id")

        def work() -> TaskInfo:
            assignee = self._require_assignee(assigned_to_id)
            if related_order_id is not None:
                order = self.session.get(Order, related_order_id)
                if order is None or order.is_deleted:
                    raise OrderNotFoundError(str(related_order_id))
            if related_receiving_id is not None:
                receiving = self.session.get(Receiving, related_receiving_id)
                if receiving is None or receiving.is_deleted:
                    raise ReceivingNotFoundError(str(related_receiving_id))

            task = Task(
                title=title,
                description=description,
                task_type=task_type.value,
                priority=priority.value,
                status=TaskStatus.PENDING.value,
                assigned_to_id=assignee.id,
                assigned_by_id=actor.actor_id,
                related_order_id=related_order_id,
                related_receiving_id=related_receiving_id,
                created_by_id=actor.actor_id,
            )
            self.session.add(task)
            self.session.flush()
            return TaskInfo.from_model(task)

        info = self._atomic(
            "task_create",
            actor,
            work,
            task_type=task_type.value,
            assigned_to_id=str(assigned_to_id),
        )
        logger.info(
            "task_created",
            extra={
                "task_id": str(info.id),
                "task_type": info.task_type.value,
                "assigned_to_id": str(info.assigned_to_id),
            },
        )
        self._activity.record(
            ActivityEntity.TASK,
            info.id,
            ActivityAction.TASK_CREATED,
            actor,
            new_values={
                "title": info.title,
                "taskType": info.task_type,
                "assignedTo": info.assigned_to_id,
                "status": info.status,
                "priority": info.priority,
            },
        )
        self._notify(
            Events.TASK_CREATED,
            {
                "taskId": str(info.id),
                "title": info.title,
                "taskType": info.task_type.value,
                "assignedTo": str(info.assigned_to_id),
                "status": info.status.value,
                "priority": info.priority.value,
            },
            actor,
        )
        return info

    def transition_status(
        self,
        task_id: UUID,
        new_status: TaskStatus | str,
        actor: Actor,
    ) -> TaskInfo:
        """
        Move a task along TASK_WORKFLOW, stamping start/completion times.

        Raises:
            ValidationError: ``new_status`` is not a task status.
            TaskNotFoundError, TaskOwnershipError, InvalidTransitionError.
        """
        target = require_choice(TaskStatus, new_status, "status")

        def work() -> tuple[TaskInfo, TaskStatus]:
            task = self._lock_live_task(task_id)
            if actor.is_staff and task.assigned_to_id != actor.actor_id:
                raise TaskOwnershipError(str(actor.actor_id), str(task.id))
            previous = TaskStatus(task.status)
            TASK_WORKFLOW.require("Task", task.id, previous.value, target.value)

            now = self._clock.now()
            if target == TaskStatus.IN_PROGRESS and task.started_at is None:
                task.started_at = now
            if target == TaskStatus.COMPLETED:
                task.completed_at = now
                if task.started_at is not None:
                    elapsed = (now - task.started_at).total_seconds()
                    task.completion_duration = round(elapsed / 60)
            task.status = target.value
            task.updated_by_id = actor.actor_id
            self.session.flush()
            return TaskInfo.from_model(task), previous

        info, previous = self._atomic(
            "task_transition",
            actor,
            work,
            task_id=str(task_id),
            requested_status=target.value,
        )
        logger.info(
            "task_status_updated",
            extra={
                "task_id": str(info.id),
                "from_status": previous.value,
                "to_status": info.status.value,
                "completion_duration": info.completion_duration,
            },
        )

        if info.status == TaskStatus.COMPLETED:
            action, event = ActivityAction.TASK_COMPLETED, Events.TASK_COMPLETED
        elif info.status == TaskStatus.CANCELLED:
            action, event = ActivityAction.TASK_CANCELLED, Events.TASK_CANCELLED
        else:
            action, event = ActivityAction.TASK_STATUS_UPDATED, Events.TASK_STATUS_UPDATED
        self._activity.record(
            ActivityEntity.TASK,
            info.id,
            action,
            actor,
            old_values={"status": previous},
            new_values={
                "status": info.status,
                "startedAt": info.started_at,
                "completedAt": info.completed_at,
                "completionDuration": info.completion_duration,
            },
        )
        self._notify(
            event,
            {
                "taskId": str(info.id),
                "title": info.title,
                "oldStatus": previous.value,
                "newStatus": info.status.value,
                "assignedTo": str(info.assigned_to_id),
                "completionDuration": info.completion_duration,
            },
            actor,
        )
        return info

    def assign_task(self, task_id: UUID, assignee_id: UUID, actor: Actor) -> TaskInfo:
        """
        Reassign an open task.

        Raises:
            TaskNotFoundError, TaskClosedError (Completed/Cancelled),
            UserNotFoundError, InvalidAssigneeError.
        """

        def work() -> tuple[TaskInfo, UUID]:
            task = self._lock_live_task(task_id)
            status = TaskStatus(task.status)
            if TASK_WORKFLOW.is_terminal(status.value):
                raise TaskClosedError(str(task.id), status.value)
            assignee = self._require_assignee(assignee_id)
            previous = task.assigned_to_id
            task.assigned_to_id = assignee.id
            task.assigned_by_id = actor.actor_id
            task.updated_by_id = actor.actor_id
            self.session.flush()
            return TaskInfo.from_model(task), previous

        info, previous = self._atomic(
            "task_assignment",
            actor,
            work,
            task_id=str(task_id),
            assignee_id=str(assignee_id),
        )
        logger.info(
            "task_assigned",
            extra={
                "task_id": str(info.id),
                "previous_assignee_id": str(previous),
                "assignee_id": str(info.assigned_to_id),
            },
        )
        self._activity.record(
            ActivityEntity.TASK,
            info.id,
            ActivityAction.TASK_ASSIGNED,
            actor,
            old_values={"assignedTo": previous},
            new_values={"assignedTo": info.assigned_to_id},
        )
        self._notify(
            Events.TASK_ASSIGNED,
            {
                "taskId": str(info.id),
                "title": info.title,
                "previousAssignee": str(previous),
                "assignedTo": str(info.assigned_to_id),
            },
            actor,
        )
        return info

    def delete_task(self, task_id: UUID, actor: Actor) -> TaskInfo:
        def work() -> TaskInfo:
            task = self._lock_live_task(task_id)
            task.mark_deleted(actor.actor_id, self._clock.now())
            self.session.flush()
            return TaskInfo.from_model(task)

        info = self._atomic("task_delete", actor, work, task_id=str(task_id))
        logger.info("task_deleted", extra={"task_id": str(info.id)})
        self._activity.record(
            ActivityEntity.TASK,
            info.id,
            ActivityAction.TASK_DELETED,
            actor,
            old_values={"status": info.status, "isDeleted": False},
            new_values={"isDeleted": True},
        )
        return info

    def _require_assignee(self, user_id: UUID) -> User:
        user = self.session.get(User, user_id)
        if user is None or user.is_deleted:
            raise UserNotFoundError(str(user_id))
        if not user.is_active:
            raise InvalidAssigneeError(str(user_id), "user is inactive")
        if UserRole(user.role) != UserRole.STAFF:
            raise InvalidAssigneeError(str(user_id), "user is not a Staff member")
        return user

    def _lock_live_task(self, task_id: UUID) -> Task:
        task = self.session.execute(
            select(Task)
            .where(Task.id == task_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if task is None or task.is_deleted:
            raise TaskNotFoundError(str(task_id))
        return task
