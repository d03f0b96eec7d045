"""Append-only activity history."""

from uuid import UUID

from backoffice.models.activity import ActivityAction, ActivityLogEntry, EntityType
from backoffice.models.mixins import utcnow
from backoffice.repositories.base import BackOfficeStore
from backoffice.schemas.auth import CurrentUser


class ActivityLog:
    """Records who changed what. Entries are never edited or removed."""

    def __init__(self, store: BackOfficeStore):
        self.store = store

    async def record(
        self,
        entity_type: EntityType,
        entity_id: UUID,
        identity: CurrentUser,
        action: ActivityAction,
        description: str = "",
        *,
        quantity_before: int | None = None,
        quantity_after: int | None = None,
    ) -> ActivityLogEntry:
        entry = ActivityLogEntry(
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=identity.id,
            user_name=identity.name,
            action=action,
            description=description,
            quantity_before=quantity_before,
            quantity_after=quantity_after,
            occurred_at=utcnow(),
        )
        return await self.store.add_activity(entry)

    async def history(self, entity_type: EntityType, entity_id: UUID) -> list[ActivityLogEntry]:
        return await self.store.list_activity(entity_type, entity_id)
