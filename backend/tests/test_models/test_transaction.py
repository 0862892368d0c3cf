import uuid
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from forma.models.account import Account
from forma.models.transaction import Transaction, TransactionStatus


async def _account(db: AsyncSession) -> Account:
    acct = Account(workspace_id=uuid.uuid4(), name="Main", current_balance=Decimal("1000.00"))
    db.add(acct)
    await db.commit()
    await db.refresh(acct)
    return acct


@pytest.mark.asyncio
async def test_create_planned_transaction(db_session: AsyncSession):
    acct = await _account(db_session)

    txn = Transaction(
        account_id=acct.id,
        description="Rent",
        amount=Decimal("-900.00"),
        status=TransactionStatus.planned,
        transaction_date=date(2026, 3, 1),
        planned_date=date(2026, 3, 5),
    )
    db_session.add(txn)
    await db_session.commit()
    await db_session.refresh(txn)

    assert txn.status == TransactionStatus.planned
    assert txn.amount == Decimal("-900.00")
    assert txn.planned_date == date(2026, 3, 5)
    assert txn.currency == "UAH"


@pytest.mark.asyncio
async def test_transaction_requires_existing_account(db_session: AsyncSession):
    db_session.add(Transaction(
        account_id=uuid.uuid4(),
        amount=Decimal("-5.00"),
        status=TransactionStatus.completed,
        transaction_date=date(2026, 3, 1),
    ))
    with pytest.raises(IntegrityError):
        await db_session.commit()
