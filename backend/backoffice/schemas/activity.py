"""Activity log schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from backoffice.models.activity import ActivityAction, EntityType


class ActivityLogEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    entity_type: EntityType
    entity_id: UUID
    user_id: UUID
    user_name: str
    action: ActivityAction
    description: str
    quantity_before: int | None
    quantity_after: int | None
    occurred_at: datetime


class ActivityLogResponse(BaseModel):
    items: list[ActivityLogEntryResponse]
    count: int
