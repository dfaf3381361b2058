"""Unit tests for installment schedule generation"""

from datetime import date
from negotiation_gateway.domain.installments import build_schedule
from negotiation_gateway.domain.models import InstallmentBreakdown, InstallmentPlan
from negotiation_gateway.utils.date_utils import add_months

AS_OF = date(2025, 3, 10)


def _plan(count, down=0, first=date(2025, 4, 5), custom=None):
    return InstallmentPlan(
        installments_count=count,
        down_payment_cents=down,
        first_due_date=first,
        custom_dates=custom or {},
    )


def test_build_schedule_equal_split():
    """21000 over 3 installments without down payment"""
    schedule = build_schedule(_plan(3), InstallmentBreakdown(21_000, 7_000, 0), AS_OF)

    assert [inst.number for inst in schedule] == [1, 2, 3]
    assert all(inst.amount_cents == 7_000 for inst in schedule)
    assert sum(inst.amount_cents for inst in schedule) == 21_000


def test_build_schedule_rounding():
    """Last installment absorbs remainder"""
    schedule = build_schedule(_plan(3), InstallmentBreakdown(10_000, 3_333, 1), AS_OF)

    assert [inst.amount_cents for inst in schedule] == [3_333, 3_333, 3_334]
    assert sum(inst.amount_cents for inst in schedule) == 10_000


def test_build_schedule_monthly_dates_without_down_payment():
    """First installment on first_due_date, then one calendar month apart"""
    schedule = build_schedule(_plan(4), InstallmentBreakdown(40_000, 10_000, 0), AS_OF)

    assert [inst.due_date for inst in schedule] == [
        date(2025, 4, 5),
        date(2025, 5, 5),
        date(2025, 6, 5),
        date(2025, 7, 5),
    ]
    assert not any(inst.is_custom_date for inst in schedule)


def test_build_schedule_with_down_payment():
    """3000 down on 21000: #0 two days out, #1 a month after #0"""
    schedule = build_schedule(_plan(3, down=3_000), InstallmentBreakdown(18_000, 6_000, 0), AS_OF)

    assert len(schedule) == 4
    down = schedule[0]
    assert down.number == 0
    assert down.amount_cents == 3_000
    assert down.due_date == date(2025, 3, 12)

    assert [inst.due_date for inst in schedule[1:]] == [date(2025, 4, 12), date(2025, 5, 12), date(2025, 6, 12)]
    assert all(inst.amount_cents == 6_000 for inst in schedule[1:])
    assert sum(inst.amount_cents for inst in schedule) == 21_000


def test_build_schedule_down_payment_ignores_first_due_date():
    schedule = build_schedule(_plan(1, down=500, first=date(2030, 1, 1)), InstallmentBreakdown(500, 500, 0), AS_OF)

    assert schedule[1].due_date == date(2025, 4, 12)


def test_build_schedule_custom_dates_win():
    custom = {2: date(2025, 5, 20)}
    schedule = build_schedule(_plan(3, custom=custom), InstallmentBreakdown(3_000, 1_000, 0), AS_OF)

    assert schedule[0].due_date == date(2025, 4, 5)
    assert schedule[1].due_date == date(2025, 5, 20)
    assert schedule[1].is_custom_date is True
    # Later installments keep their computed dates
    assert schedule[2].due_date == date(2025, 6, 5)


def test_build_schedule_custom_down_payment_date_moves_anchor():
    custom = {0: date(2025, 3, 20)}
    schedule = build_schedule(_plan(2, down=1_000, custom=custom), InstallmentBreakdown(2_000, 1_000, 0), AS_OF)

    assert schedule[0].due_date == date(2025, 3, 20)
    assert schedule[0].is_custom_date is True
    assert schedule[1].due_date == date(2025, 4, 20)
    assert schedule[2].due_date == date(2025, 5, 20)


def test_build_schedule_month_end_clamping():
    """Jan 31 + 1 month lands on Feb 28; months are counted from the anchor, not chained"""
    schedule = build_schedule(_plan(3, first=date(2025, 1, 31)), InstallmentBreakdown(3_000, 1_000, 0), AS_OF)

    assert [inst.due_date for inst in schedule] == [date(2025, 1, 31), date(2025, 2, 28), date(2025, 3, 31)]


def test_build_schedule_dates_non_decreasing():
    schedule = build_schedule(_plan(12, first=date(2024, 8, 31)), InstallmentBreakdown(12_000, 1_000, 0), AS_OF)

    dates = [inst.due_date for inst in schedule]
    assert dates == sorted(dates)
    assert len(set(dates)) == 12


def test_add_months_leap_year():
    assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
    assert add_months(date(2024, 12, 15), 1) == date(2025, 1, 15)
    assert add_months(date(2025, 11, 30), 3) == date(2026, 2, 28)
