"""Stock item model."""

from decimal import Decimal

from sqlalchemy import String, Integer, Numeric, Boolean, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.core.config import settings
from backoffice.db.base import Base
from backoffice.models.mixins import UUIDPrimaryKeyMixin, TimestampMixin


class StockItem(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "stock_items"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_stock_items_quantity_non_negative"),
        CheckConstraint("price >= 0", name="ck_stock_items_price_non_negative"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    brand: Mapped[str | None] = mapped_column(String(255))
    dosage: Mapped[str | None] = mapped_column(String(100))
    low_stock_threshold: Mapped[int] = mapped_column(
        Integer, default=settings.LOW_STOCK_THRESHOLD, nullable=False
    )
    # Stored so low-stock listings can filter on it; kept current by refresh_low_stock()
    is_low_stock: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)

    def refresh_low_stock(self) -> bool:
        self.is_low_stock = self.quantity < self.low_stock_threshold
        return self.is_low_stock

    def __repr__(self) -> str:
        return f"<StockItem {self.name} qty={self.quantity}>"
