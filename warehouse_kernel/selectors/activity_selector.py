"""
Module: warehouse_kernel.selectors.activity_selector
Responsibility: Reads the activity trail for one entity or one actor.
Architecture position: Kernel > Selectors.
"""

from uuid import UUID

from sqlalchemy import select

from warehouse_kernel.domain.dtos import ActivityAction, ActivityEntity, ActivityLogInfo
from warehouse_kernel.domain.validation import require_choice
from warehouse_kernel.models.activity_log import ActivityLogEntry
from warehouse_kernel.selectors.base import BaseSelector


class ActivitySelector(BaseSelector[ActivityLogEntry]):
    def for_entity(
        self,
        entity_type: ActivityEntity,
        entity_id: UUID,
        action: ActivityAction | None = None,
    ) -> list[ActivityLogInfo]:
        """Entries for one entity, oldest first."""
        query = select(ActivityLogEntry).where(
            ActivityLogEntry.entity_type
            == require_choice(ActivityEntity, entity_type, "entity_type").value,
            ActivityLogEntry.entity_id == entity_id,
        )
        if action is not None:
            query = query.where(
                ActivityLogEntry.action == require_choice(ActivityAction, action, "action").value
            )
        query = query.order_by(ActivityLogEntry.occurred_at, ActivityLogEntry.id)
        return [ActivityLogInfo.from_model(e) for e in self.session.execute(query).scalars()]

    def by_actor(self, actor_id: UUID, limit: int = 50) -> list[ActivityLogInfo]:
        query = (
            select(ActivityLogEntry)
            .where(ActivityLogEntry.performed_by_id == actor_id)
            .order_by(ActivityLogEntry.occurred_at.desc())
            .limit(limit)
        )
        return [ActivityLogInfo.from_model(e) for e in self.session.execute(query).scalars()]
