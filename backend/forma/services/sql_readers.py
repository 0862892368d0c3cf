"""SQLAlchemy implementations of the forecast data-source ports."""

import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from forma.models.account import Account
from forma.models.transaction import Transaction, TransactionStatus
from forma.models.user_settings import UserSettings as UserSettingsRow
from forma.services.forecast_types import TransactionRecord, UserSettings
from forma.services.readers import BalanceReader, SettingsReader, TransactionReader


def _to_record(txn: Transaction) -> TransactionRecord:
    return TransactionRecord(
        id=txn.id,
        account_id=txn.account_id,
        amount=txn.amount,
        status=txn.status,
        transaction_date=txn.transaction_date,
        planned_date=txn.planned_date,
        currency=txn.currency,
        description=txn.description,
    )


class SqlTransactionReader(TransactionReader):

    def __init__(self, db: AsyncSession):
        self._db = db

    async def list_completed_transactions(self, account_id: uuid.UUID, since_date: date):
        result = await self._db.execute(
            select(Transaction).where(
                Transaction.account_id == account_id,
                Transaction.status == TransactionStatus.completed,
                Transaction.transaction_date >= since_date,
                Transaction.deleted_at.is_(None),
            ).order_by(Transaction.transaction_date.asc())
        )
        return [_to_record(t) for t in result.scalars().all()]

    async def list_planned_transactions(self, account_id: uuid.UUID, until_date: date):
        # planned_date governs placement; fall back to transaction_date when unset
        result = await self._db.execute(
            select(Transaction).where(
                Transaction.account_id == account_id,
                Transaction.status == TransactionStatus.planned,
                Transaction.deleted_at.is_(None),
                or_(
                    Transaction.planned_date <= until_date,
                    and_(
                        Transaction.planned_date.is_(None),
                        Transaction.transaction_date <= until_date,
                    ),
                ),
            ).order_by(
                func.coalesce(Transaction.planned_date, Transaction.transaction_date).asc()
            )
        )
        return [_to_record(t) for t in result.scalars().all()]


class SqlSettingsReader(SettingsReader):

    def __init__(self, db: AsyncSession):
        self._db = db

    async def get_user_settings(self, workspace_id: uuid.UUID) -> UserSettings | None:
        result = await self._db.execute(
            select(UserSettingsRow).where(UserSettingsRow.workspace_id == workspace_id)
        )
        row = result.scalar_one_or_none()
        if row is None:
            return None
        return UserSettings(
            minimum_safe_balance=row.minimum_safe_balance,
            safety_buffer_days=row.safety_buffer_days,
        )


class SqlBalanceReader(BalanceReader):

    def __init__(self, db: AsyncSession):
        self._db = db

    async def get_current_balance(self, account_id: uuid.UUID) -> Decimal | None:
        result = await self._db.execute(
            select(Account.current_balance).where(
                Account.id == account_id,
                Account.deleted_at.is_(None),
            )
        )
        return result.scalar_one_or_none()
