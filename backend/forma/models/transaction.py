import enum
import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Date, DateTime, Enum, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from forma.models.base import Base, TimestampMixin, generate_uuid


class TransactionStatus(str, enum.Enum):
    completed = "completed"
    planned = "planned"


class Transaction(TimestampMixin, Base):
    __tablename__ = "transactions"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=generate_uuid)
    account_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("accounts.id"), nullable=False, index=True
    )
    description: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=15, scale=2), nullable=False
    )  # Signed: negative = outflow
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="UAH")
    status: Mapped[TransactionStatus] = mapped_column(
        Enum(TransactionStatus, native_enum=False), nullable=False
    )
    transaction_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    planned_date: Mapped[date | None] = mapped_column(Date, nullable=True, index=True)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
