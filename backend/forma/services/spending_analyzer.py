"""Spending pattern analysis: average daily outflow plus a confidence grade.

Average daily spending = total outflow / calendar days in the observed
window. The window starts at the first outflow inside the lookback period
and runs up to the reference date, zero-spend days included, so sparse or
stopped spending is not overstated. The reference date itself only counts
when it already has outflows, since that day is still in progress.

Confidence depends on how many distinct days had spending and on the
coefficient of variation (population stdev / mean) of daily outflow totals.
"""

from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal
from statistics import mean, median, pstdev

from forma.models.transaction import TransactionStatus
from forma.services.forecast_types import (
    SpendingConfidence,
    SpendingEstimate,
    TransactionRecord,
)

# --- Tunable thresholds ---

DEFAULT_LOOKBACK_DAYS = 90

# Below this many distinct spending days there is nothing to estimate.
MIN_SPENDING_DAYS = 3
MEDIUM_MIN_SPENDING_DAYS = 10
HIGH_MIN_SPENDING_DAYS = 20

MEDIUM_MAX_CV = Decimal("1.0")
HIGH_MAX_CV = Decimal("0.5")

ZERO = Decimal("0")


def _grade_confidence(spending_days: int, cv: Decimal) -> SpendingConfidence:
    if spending_days < MIN_SPENDING_DAYS:
        return SpendingConfidence.none
    if spending_days >= HIGH_MIN_SPENDING_DAYS and cv <= HIGH_MAX_CV:
        return SpendingConfidence.high
    if spending_days >= MEDIUM_MIN_SPENDING_DAYS and cv <= MEDIUM_MAX_CV:
        return SpendingConfidence.medium
    return SpendingConfidence.low


def _cap_confidence(confidence: SpendingConfidence) -> SpendingConfidence:
    if confidence == SpendingConfidence.none:
        return confidence
    return SpendingConfidence.low


def _exclude_outliers(
    outflows: list[TransactionRecord],
    multiplier: Decimal,
) -> tuple[list[TransactionRecord], bool]:
    """Drop one-off purchases larger than multiplier x median outflow.

    Returns (kept, all_excluded). When every outflow would be dropped the
    full list is kept and the caller downgrades confidence.
    """
    threshold = median([-t.amount for t in outflows]) * multiplier
    kept = [t for t in outflows if -t.amount <= threshold]
    if not kept:
        return outflows, True
    return kept, False


def analyze_spending(
    transactions: list[TransactionRecord],
    *,
    reference_date: date,
    lookback_days: int = DEFAULT_LOOKBACK_DAYS,
    outlier_multiplier: Decimal | None = None,
) -> SpendingEstimate:
    """Estimate average daily spending from completed transactions.

    Only completed outflows dated within
    [reference_date - lookback_days, reference_date] are considered.
    """
    window_start = reference_date - timedelta(days=lookback_days)
    outflows = [
        t for t in transactions
        if t.status == TransactionStatus.completed
        and t.is_outflow
        and window_start <= t.effective_date <= reference_date
    ]

    if not outflows:
        return SpendingEstimate(
            average_daily_spending=ZERO,
            confidence=SpendingConfidence.none,
        )

    all_outliers = False
    excluded = 0
    if outlier_multiplier is not None:
        kept, all_outliers = _exclude_outliers(outflows, outlier_multiplier)
        excluded = len(outflows) - len(kept)
        outflows = kept

    daily_spend: dict[date, Decimal] = defaultdict(Decimal)
    for txn in outflows:
        daily_spend[txn.effective_date] += -txn.amount

    first_day = min(daily_spend)
    last_day = max(max(daily_spend), reference_date - timedelta(days=1))
    days_analyzed = (last_day - first_day).days + 1

    # Fill in zero-spend days, trailing ones included, so the average is per calendar day
    all_days = [
        daily_spend.get(first_day + timedelta(days=offset), ZERO)
        for offset in range(days_analyzed)
    ]

    total = sum(all_days, ZERO)
    average = total / days_analyzed
    avg_for_cv = mean(all_days)
    cv = pstdev(all_days) / avg_for_cv if avg_for_cv > 0 else ZERO

    confidence = _grade_confidence(len(daily_spend), cv)
    if all_outliers:
        confidence = _cap_confidence(confidence)

    return SpendingEstimate(
        average_daily_spending=average,
        confidence=confidence,
        days_analyzed=days_analyzed,
        spending_days=len(daily_spend),
        transactions_included=len(outflows),
        transactions_excluded=excluded,
        total_spending=total,
        coefficient_of_variation=cv,
    )
