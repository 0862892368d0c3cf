import uuid
from decimal import Decimal

from sqlalchemy import CheckConstraint, Integer, Numeric
from sqlalchemy.orm import Mapped, mapped_column

from forma.models.base import Base, TimestampMixin, generate_uuid


class UserSettings(TimestampMixin, Base):
    """Per-workspace forecast preferences: safety floor and buffer window."""

    __tablename__ = "user_settings"
    __table_args__ = (
        CheckConstraint(
            "safety_buffer_days >= 1 AND safety_buffer_days <= 30",
            name="ck_user_settings_buffer_days",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=generate_uuid)
    workspace_id: Mapped[uuid.UUID] = mapped_column(nullable=False, unique=True, index=True)
    minimum_safe_balance: Mapped[Decimal] = mapped_column(
        Numeric(precision=15, scale=2), nullable=False, default=Decimal("0.00")
    )
    safety_buffer_days: Mapped[int] = mapped_column(Integer, nullable=False, default=7)
