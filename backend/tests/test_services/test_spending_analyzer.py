"""Spending analyzer tests: averages, confidence grading, outliers."""

import uuid
from datetime import date, timedelta
from decimal import Decimal

from forma.models.transaction import TransactionStatus
from forma.services.forecast_types import SpendingConfidence, TransactionRecord
from forma.services.spending_analyzer import analyze_spending

TODAY = date(2026, 3, 10)
ACCOUNT = uuid.uuid4()


def _txn(amount: str, day: date, status=TransactionStatus.completed) -> TransactionRecord:
    return TransactionRecord(
        id=uuid.uuid4(),
        account_id=ACCOUNT,
        amount=Decimal(amount),
        status=status,
        transaction_date=day,
        planned_date=day if status == TransactionStatus.planned else None,
    )


def _daily(amounts: list[str]) -> list[TransactionRecord]:
    """One completed outflow per day ending yesterday."""
    n = len(amounts)
    return [_txn(a, TODAY - timedelta(days=n - i)) for i, a in enumerate(amounts)]


def test_no_transactions_is_none_confidence():
    estimate = analyze_spending([], reference_date=TODAY)

    assert estimate.average_daily_spending == Decimal("0")
    assert estimate.confidence == SpendingConfidence.none
    assert estimate.should_display is False


def test_steady_daily_spending_is_high_confidence():
    estimate = analyze_spending(_daily(["-20"] * 30), reference_date=TODAY)

    assert estimate.average_daily_spending == Decimal("20")
    assert estimate.confidence == SpendingConfidence.high
    assert estimate.should_display is True
    assert estimate.spending_days == 30
    assert estimate.days_analyzed == 30
    assert estimate.coefficient_of_variation == Decimal("0")


def test_average_divides_by_calendar_days_not_transactions():
    """Spending every other day halves the daily average."""
    txns = [_txn("-40", TODAY - timedelta(days=2 * i + 1)) for i in range(15)]

    estimate = analyze_spending(txns, reference_date=TODAY)

    # 15 outflows of 40 over a 29-day window
    assert estimate.days_analyzed == 29
    assert estimate.average_daily_spending == Decimal("600") / 29
    assert estimate.spending_days == 15


def test_inflows_are_ignored():
    txns = _daily(["-10"] * 25) + [_txn("5000", TODAY - timedelta(days=3))]

    estimate = analyze_spending(txns, reference_date=TODAY)

    assert estimate.average_daily_spending == Decimal("10")
    assert estimate.transactions_included == 25


def test_planned_transactions_are_ignored():
    txns = [_txn("-100", TODAY + timedelta(days=i), TransactionStatus.planned) for i in range(1, 20)]

    estimate = analyze_spending(txns, reference_date=TODAY)

    assert estimate.confidence == SpendingConfidence.none
    assert estimate.average_daily_spending == Decimal("0")


def test_transactions_outside_lookback_are_ignored():
    old = [_txn("-500", TODAY - timedelta(days=200 + i)) for i in range(10)]
    recent = _daily(["-15"] * 21)

    estimate = analyze_spending(old + recent, reference_date=TODAY, lookback_days=90)

    assert estimate.average_daily_spending == Decimal("15")


def test_fewer_than_three_spending_days_is_none():
    txns = _daily(["-30", "-30"])

    estimate = analyze_spending(txns, reference_date=TODAY)

    assert estimate.confidence == SpendingConfidence.none
    assert estimate.should_display is False
    # The raw figure is still computed for internal use
    assert estimate.average_daily_spending == Decimal("30")


def test_volatile_spending_is_low_confidence():
    amounts = ["-1", "-1", "-1", "-300"] * 8
    estimate = analyze_spending(_daily(amounts), reference_date=TODAY)

    assert estimate.confidence == SpendingConfidence.low
    assert estimate.should_display is False


def test_moderate_sample_is_medium_confidence():
    estimate = analyze_spending(_daily(["-25"] * 12), reference_date=TODAY)

    assert estimate.confidence == SpendingConfidence.medium
    assert estimate.should_display is True


def test_small_steady_sample_is_low_confidence():
    estimate = analyze_spending(_daily(["-25"] * 5), reference_date=TODAY)

    assert estimate.confidence == SpendingConfidence.low


def test_multiple_outflows_same_day_are_summed():
    txns = _daily(["-10"] * 20) + [_txn("-10", TODAY - timedelta(days=1))]

    estimate = analyze_spending(txns, reference_date=TODAY)

    assert estimate.spending_days == 20
    assert estimate.total_spending == Decimal("210")


def test_outlier_exclusion_drops_one_off_purchase():
    txns = _daily(["-20"] * 30) + [_txn("-2000", TODAY - timedelta(days=5))]

    without = analyze_spending(txns, reference_date=TODAY)
    with_exclusion = analyze_spending(txns, reference_date=TODAY, outlier_multiplier=Decimal("3"))

    assert without.average_daily_spending > Decimal("80")
    assert with_exclusion.average_daily_spending == Decimal("20")
    assert with_exclusion.transactions_excluded == 1


def test_outlier_exclusion_disabled_by_default():
    txns = _daily(["-20"] * 30) + [_txn("-2000", TODAY - timedelta(days=5))]

    estimate = analyze_spending(txns, reference_date=TODAY)

    assert estimate.transactions_excluded == 0
    assert estimate.total_spending == Decimal("2600")


def test_single_old_outflow_is_spread_over_window():
    txns = [_txn("-300", TODAY - timedelta(days=60))]

    estimate = analyze_spending(txns, reference_date=TODAY)

    # Window runs from the outflow through yesterday
    assert estimate.days_analyzed == 60
    assert estimate.average_daily_spending == Decimal("5")
    assert estimate.confidence == SpendingConfidence.none


def test_stopped_spending_is_diluted_by_quiet_days():
    txns = [_txn("-20", TODAY - timedelta(days=61 + i)) for i in range(29)]

    estimate = analyze_spending(txns, reference_date=TODAY)

    assert estimate.days_analyzed == 89
    assert estimate.average_daily_spending == Decimal("580") / 89
    assert estimate.confidence == SpendingConfidence.low
    assert estimate.should_display is False


def test_outflow_dated_today_extends_window_to_today():
    txns = _daily(["-20"] * 29) + [_txn("-20", TODAY)]

    estimate = analyze_spending(txns, reference_date=TODAY)

    assert estimate.days_analyzed == 30
    assert estimate.average_daily_spending == Decimal("20")
