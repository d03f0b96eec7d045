"""Append-only activity log shared by stock items, customers, invoices and users."""

import enum
import uuid
from datetime import datetime

from sqlalchemy import String, Integer, Text, Enum, DateTime, Index, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.db.base import Base
from backoffice.models.mixins import utcnow


class EntityType(str, enum.Enum):
    STOCK_ITEM = "stock_item"
    CUSTOMER = "customer"
    INVOICE = "invoice"
    USER = "user"


class ActivityAction(str, enum.Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    STOCK_UPDATE = "stock_update"
    SALE = "sale"
    RETURN = "return"
    ROLE_CHANGE = "role_change"


class ActivityLogEntry(Base):
    __tablename__ = "activity_log"
    __table_args__ = (
        Index("ix_activity_log_entity", "entity_type", "entity_id", "id"),
    )

    # Integer key gives a total order; timestamps can collide
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    entity_type: Mapped[EntityType] = mapped_column(Enum(EntityType), nullable=False)
    entity_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)

    # No FK: history must survive deletion or rename of the user
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    user_name: Mapped[str] = mapped_column(String(255), nullable=False)

    action: Mapped[ActivityAction] = mapped_column(Enum(ActivityAction), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    quantity_before: Mapped[int | None] = mapped_column(Integer)
    quantity_after: Mapped[int | None] = mapped_column(Integer)
    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<ActivityLogEntry {self.entity_type}:{self.entity_id} {self.action}>"
