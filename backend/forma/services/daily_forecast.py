"""Daily balance projection.

Walks calendar days from start to end keeping a running balance anchored at
the current balance:
1. Planned transactions dated that day are applied (signed amounts)
2. Days strictly after today also lose the average daily spending once
3. The end-of-day balance is recorded with a per-day confidence

Today and earlier days never get the spending estimate subtracted, since the
current balance already reflects them. An estimate graded `none` is not
applied at all. All arithmetic stays in Decimal.
"""

from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal

from forma.services.forecast_errors import InvalidRangeError
from forma.services.forecast_types import (
    DailyForecast,
    SpendingConfidence,
    SpendingEstimate,
    TransactionRecord,
)

ZERO = Decimal("0")

# Per-day confidence decays with distance from today
HIGH_CONFIDENCE_MAX_DAYS = 14
MEDIUM_CONFIDENCE_MAX_DAYS = 30


def iter_days(start: date, end: date):
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def projected_daily_spending(spending: SpendingEstimate) -> Decimal:
    """Spending subtracted per future day; zero when there is no usable estimate."""
    if spending.confidence == SpendingConfidence.none:
        return ZERO
    return spending.average_daily_spending


def day_confidence(day: date, today: date, spending: SpendingConfidence) -> SpendingConfidence:
    if spending in (SpendingConfidence.none, SpendingConfidence.low):
        return SpendingConfidence.low
    days_ahead = (day - today).days
    if days_ahead > MEDIUM_CONFIDENCE_MAX_DAYS:
        return SpendingConfidence.low
    if days_ahead > HIGH_CONFIDENCE_MAX_DAYS:
        return SpendingConfidence.medium
    return spending


def _bucket_planned(
    planned: list[TransactionRecord],
) -> tuple[dict[date, Decimal], dict[date, Decimal]]:
    """Split planned amounts into per-day inflow and outflow totals."""
    inflow: dict[date, Decimal] = defaultdict(Decimal)
    outflow: dict[date, Decimal] = defaultdict(Decimal)
    for txn in planned:
        day = txn.effective_date
        if txn.amount < 0:
            outflow[day] += txn.amount
        else:
            inflow[day] += txn.amount
    return inflow, outflow


def calculate_daily_forecast(
    current_balance: Decimal,
    start_date: date,
    end_date: date,
    planned_transactions: list[TransactionRecord],
    spending: SpendingEstimate,
    *,
    today: date,
) -> list[DailyForecast]:
    """Project end-of-day balances for every day in [start_date, end_date]."""
    if end_date < start_date:
        raise InvalidRangeError(
            f"end_date {end_date.isoformat()} is before start_date {start_date.isoformat()}"
        )

    inflow, outflow = _bucket_planned(planned_transactions)
    daily_spend = projected_daily_spending(spending)
    running = Decimal(current_balance)

    # Roll the anchor forward over days between today and a future start
    for day in iter_days(today + timedelta(days=1), start_date - timedelta(days=1)):
        running += inflow.get(day, ZERO) + outflow.get(day, ZERO) - daily_spend

    forecasts: list[DailyForecast] = []
    for day in iter_days(start_date, end_date):
        starting = running
        day_in = inflow.get(day, ZERO)
        day_out = outflow.get(day, ZERO)
        applied = daily_spend if day > today else ZERO

        running = starting + day_in + day_out - applied

        forecasts.append(DailyForecast(
            date=day,
            projected_balance=running,
            spending_applied=applied,
            starting_balance=starting,
            planned_inflow=day_in,
            planned_outflow=day_out,
            confidence=day_confidence(day, today, spending.confidence),
        ))

    return forecasts


def lowest_point(forecasts: list[DailyForecast]) -> DailyForecast | None:
    """Earliest day with the minimum projected balance."""
    if not forecasts:
        return None
    return min(forecasts, key=lambda f: (f.projected_balance, f.date))
