"""Data-source ports consumed by ForecastService.

Implementations fetch already-authorized data. Returning None means "not
found"; raising means the source failed.
"""

import uuid
from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal

from forma.services.forecast_types import TransactionRecord, UserSettings


class TransactionReader(ABC):

    @abstractmethod
    async def list_completed_transactions(
        self, account_id: uuid.UUID, since_date: date,
    ) -> list[TransactionRecord]:
        """Completed transactions dated on or after since_date."""
        ...

    @abstractmethod
    async def list_planned_transactions(
        self, account_id: uuid.UUID, until_date: date,
    ) -> list[TransactionRecord]:
        """Planned transactions dated on or before until_date."""
        ...


class SettingsReader(ABC):

    @abstractmethod
    async def get_user_settings(self, workspace_id: uuid.UUID) -> UserSettings | None:
        ...


class BalanceReader(ABC):

    @abstractmethod
    async def get_current_balance(self, account_id: uuid.UUID) -> Decimal | None:
        ...
