"""Forecast schemas: response models for the forecast API.

Engine values are exact Decimals; amounts are rounded to cents here and
nowhere else.
"""

import uuid
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal

from pydantic import BaseModel

from forma.services.forecast_types import CacheStats, CompleteForecast

CENT = Decimal("0.01")


def money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


class DailyForecastRead(BaseModel):
    date: date
    projected_balance: Decimal
    spending_applied: Decimal
    starting_balance: Decimal
    planned_inflow: Decimal
    planned_outflow: Decimal
    confidence: str
    risk_level: str | None


class PaymentRiskRead(BaseModel):
    transaction_id: uuid.UUID
    date: date
    amount: Decimal
    projected_balance: Decimal
    shortfall: Decimal
    days_until: int
    severity: str
    risk_score: float
    recommendation: str


class UserSettingsRead(BaseModel):
    minimum_safe_balance: Decimal
    safety_buffer_days: int


class CompleteForecastRead(BaseModel):
    workspace_id: uuid.UUID
    account_id: uuid.UUID
    start_date: date
    end_date: date
    daily_forecasts: list[DailyForecastRead]
    payment_risks: list[PaymentRiskRead]
    average_daily_spending: Decimal
    spending_confidence: str
    should_display: bool
    days_analyzed: int
    current_balance: Decimal
    user_settings: UserSettingsRead
    lowest_balance: Decimal | None
    lowest_balance_date: date | None
    computed_at: datetime

    @classmethod
    def from_forecast(cls, forecast: CompleteForecast) -> "CompleteForecastRead":
        return cls(
            workspace_id=forecast.workspace_id,
            account_id=forecast.account_id,
            start_date=forecast.options.start_date,
            end_date=forecast.options.end_date,
            daily_forecasts=[
                DailyForecastRead(
                    date=f.date,
                    projected_balance=money(f.projected_balance),
                    spending_applied=money(f.spending_applied),
                    starting_balance=money(f.starting_balance),
                    planned_inflow=money(f.planned_inflow),
                    planned_outflow=money(f.planned_outflow),
                    confidence=f.confidence.value,
                    risk_level=f.risk_level.value if f.risk_level else None,
                )
                for f in forecast.daily_forecasts
            ],
            payment_risks=[
                PaymentRiskRead(
                    transaction_id=r.transaction_id,
                    date=r.date,
                    amount=money(r.amount),
                    projected_balance=money(r.projected_balance),
                    shortfall=money(r.shortfall),
                    days_until=r.days_until,
                    severity=r.severity.value,
                    risk_score=round(r.risk_score, 2),
                    recommendation=r.recommendation,
                )
                for r in forecast.payment_risks
            ],
            average_daily_spending=money(forecast.average_daily_spending),
            spending_confidence=forecast.spending_confidence.value,
            should_display=forecast.should_display,
            days_analyzed=forecast.spending.days_analyzed,
            current_balance=money(forecast.current_balance),
            user_settings=UserSettingsRead(
                minimum_safe_balance=money(forecast.settings.minimum_safe_balance),
                safety_buffer_days=forecast.settings.safety_buffer_days,
            ),
            lowest_balance=(
                money(forecast.lowest_balance) if forecast.lowest_balance is not None else None
            ),
            lowest_balance_date=forecast.lowest_balance_date,
            computed_at=forecast.computed_at,
        )


class CacheStatsRead(BaseModel):
    size: int
    hits: int
    misses: int
    hit_rate: int

    @classmethod
    def from_stats(cls, stats: CacheStats) -> "CacheStatsRead":
        return cls(size=stats.size, hits=stats.hits, misses=stats.misses, hit_rate=stats.hit_rate)
