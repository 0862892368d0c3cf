"""Payment risk assessment for planned transactions.

A planned outflow is a risk when the projected end-of-day balance on its
date is below the user's minimum safe balance. Each risk gets a 0-100 score:

- Urgency (up to 50): a flat bonus inside the safety buffer window plus a
  term that decays with days until the transaction
- Depth (up to 50): shortfall relative to the safety floor plus a flat bonus
  when the balance goes negative

The score strictly grows as the date gets closer and as the shortfall gets
larger. Severity is bucketed from the score.
"""

from dataclasses import replace
from datetime import date
from decimal import Decimal

from forma.services.forecast_types import (
    DailyForecast,
    DayRiskLevel,
    PaymentRisk,
    RiskSeverity,
    TransactionRecord,
    UserSettings,
)

# --- Tunable thresholds ---

URGENCY_WEIGHT = 50.0
DEPTH_WEIGHT = 50.0

# Shortfalls are measured against max(|minimum_safe_balance|, this floor)
DEPTH_SCALE_FLOOR = Decimal("100")

CRITICAL_SCORE = 75.0
HIGH_SCORE = 50.0
MEDIUM_SCORE = 25.0


def _urgency(days_until: int, safety_buffer_days: int) -> float:
    days = max(days_until, 0)
    in_buffer = 1.0 if days <= safety_buffer_days else 0.0
    return 0.5 * in_buffer + 0.5 / (1 + days)


def _depth(shortfall: Decimal, projected_balance: Decimal, minimum_safe_balance: Decimal) -> float:
    scale = max(abs(minimum_safe_balance), DEPTH_SCALE_FLOOR)
    relative = float(shortfall / (shortfall + scale))
    overdrawn = 1.0 if projected_balance < 0 else 0.0
    return 0.5 * relative + 0.5 * overdrawn


def score_risk(
    days_until: int,
    shortfall: Decimal,
    projected_balance: Decimal,
    settings: UserSettings,
) -> float:
    return (
        URGENCY_WEIGHT * _urgency(days_until, settings.safety_buffer_days)
        + DEPTH_WEIGHT * _depth(shortfall, projected_balance, settings.minimum_safe_balance)
    )


def severity_for_score(score: float) -> RiskSeverity:
    if score >= CRITICAL_SCORE:
        return RiskSeverity.critical
    if score >= HIGH_SCORE:
        return RiskSeverity.high
    if score >= MEDIUM_SCORE:
        return RiskSeverity.medium
    return RiskSeverity.low


def _recommendation(
    projected_balance: Decimal,
    shortfall: Decimal,
    day: date,
) -> str:
    when = day.strftime("%b %d")
    if projected_balance < 0:
        return (
            f"Insufficient funds. Need {shortfall:.2f} more by {when} "
            f"to stay above your minimum safe balance."
        )
    return (
        f"Balance will be tight. It drops {shortfall:.2f} below your "
        f"minimum safe balance on {when}."
    )


def assess_payment_risks(
    daily_forecasts: list[DailyForecast],
    planned_transactions: list[TransactionRecord],
    settings: UserSettings,
    *,
    today: date,
) -> list[PaymentRisk]:
    """Flag planned outflows whose posting day ends below the safety floor.

    Planned income and transactions dated outside the forecast horizon are
    ignored. Output is sorted by date, then transaction id.
    """
    by_date = {f.date: f for f in daily_forecasts}
    floor = settings.minimum_safe_balance

    risks: list[PaymentRisk] = []
    for txn in planned_transactions:
        if not txn.is_outflow:
            continue
        day = txn.effective_date
        forecast = by_date.get(day)
        if forecast is None or forecast.projected_balance >= floor:
            continue

        projected = forecast.projected_balance
        shortfall = floor - projected
        days_until = (day - today).days
        score = score_risk(days_until, shortfall, projected, settings)

        risks.append(PaymentRisk(
            transaction_id=txn.id,
            date=day,
            amount=txn.amount,
            projected_balance=projected,
            shortfall=shortfall,
            days_until=days_until,
            severity=severity_for_score(score),
            risk_score=score,
            recommendation=_recommendation(projected, shortfall, day),
        ))

    risks.sort(key=lambda r: (r.date, str(r.transaction_id)))
    return risks


def classify_day(
    balance: Decimal,
    settings: UserSettings,
    average_daily_spending: Decimal,
) -> DayRiskLevel:
    """Danger below the floor, warning when less than a buffer of spending remains above it."""
    if balance < settings.minimum_safe_balance:
        return DayRiskLevel.danger
    warning_line = settings.minimum_safe_balance + average_daily_spending * settings.safety_buffer_days
    if balance < warning_line:
        return DayRiskLevel.warning
    return DayRiskLevel.safe


def classify_days(
    daily_forecasts: list[DailyForecast],
    settings: UserSettings,
    average_daily_spending: Decimal,
) -> list[DailyForecast]:
    """Copy of the projection with risk_level filled in for every day."""
    return [
        replace(f, risk_level=classify_day(f.projected_balance, settings, average_daily_spending))
        for f in daily_forecasts
    ]
