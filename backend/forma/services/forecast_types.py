"""Value objects passed between the forecast calculators.

Everything here is immutable and owned by the call that produced it. Only
ForecastCache keeps results across calls.
"""

import enum
import uuid
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from forma.models.transaction import TransactionStatus


class SpendingConfidence(str, enum.Enum):
    """How far the average daily spending figure can be trusted.

    high: many spending days, steady amounts
    medium: moderate sample and variance
    low: enough data for an average, but volatile
    none: too few spending days to estimate anything
    """
    high = "high"
    medium = "medium"
    low = "low"
    none = "none"

    @property
    def should_display(self) -> bool:
        return self in (SpendingConfidence.high, SpendingConfidence.medium)


class RiskSeverity(str, enum.Enum):
    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"


class DayRiskLevel(str, enum.Enum):
    """Day-level classification of a projected balance."""
    safe = "safe"
    warning = "warning"
    danger = "danger"


class ForecastStage(str, enum.Enum):
    idle = "idle"
    resolving_inputs = "resolving_inputs"
    computing = "computing"
    done = "done"
    failed = "failed"


@dataclass(frozen=True)
class TransactionRecord:
    id: uuid.UUID
    account_id: uuid.UUID
    amount: Decimal
    status: TransactionStatus
    transaction_date: date
    planned_date: date | None = None
    currency: str = "UAH"
    description: str = ""

    @property
    def effective_date(self) -> date:
        """The day this transaction lands on the forecast timeline."""
        if self.status == TransactionStatus.planned and self.planned_date is not None:
            return self.planned_date
        return self.transaction_date

    @property
    def is_outflow(self) -> bool:
        return self.amount < 0


@dataclass(frozen=True)
class UserSettings:
    minimum_safe_balance: Decimal
    safety_buffer_days: int = 7


@dataclass(frozen=True)
class SpendingEstimate:
    average_daily_spending: Decimal
    confidence: SpendingConfidence
    days_analyzed: int = 0
    spending_days: int = 0
    transactions_included: int = 0
    transactions_excluded: int = 0
    total_spending: Decimal = Decimal("0")
    coefficient_of_variation: Decimal | None = None

    @property
    def should_display(self) -> bool:
        return self.confidence.should_display


@dataclass(frozen=True)
class DailyForecast:
    date: date
    projected_balance: Decimal
    spending_applied: Decimal
    starting_balance: Decimal
    planned_inflow: Decimal = Decimal("0")
    planned_outflow: Decimal = Decimal("0")
    # Never `none`; decays with distance from today
    confidence: SpendingConfidence = SpendingConfidence.low
    # Set once settings are known (payment_risk.classify_days)
    risk_level: DayRiskLevel | None = None

    @property
    def planned_net(self) -> Decimal:
        return self.planned_inflow + self.planned_outflow


@dataclass(frozen=True)
class PaymentRisk:
    transaction_id: uuid.UUID
    date: date
    amount: Decimal
    projected_balance: Decimal
    shortfall: Decimal
    days_until: int
    severity: RiskSeverity
    risk_score: float
    recommendation: str = ""


@dataclass(frozen=True)
class ForecastOptions:
    start_date: date
    end_date: date
    # Per-request overrides of the stored settings
    minimum_safe_balance: Decimal | None = None
    safety_buffer_days: int | None = None


@dataclass(frozen=True)
class CompleteForecast:
    workspace_id: uuid.UUID
    account_id: uuid.UUID
    options: ForecastOptions
    daily_forecasts: list[DailyForecast]
    payment_risks: list[PaymentRisk]
    spending: SpendingEstimate
    current_balance: Decimal
    settings: UserSettings
    computed_at: datetime
    lowest_balance: Decimal | None = None
    lowest_balance_date: date | None = None

    @property
    def average_daily_spending(self) -> Decimal:
        return self.spending.average_daily_spending

    @property
    def spending_confidence(self) -> SpendingConfidence:
        return self.spending.confidence

    @property
    def should_display(self) -> bool:
        return self.spending.should_display


@dataclass(frozen=True)
class CacheStats:
    size: int
    hits: int
    misses: int
    hit_rate: int = 0
