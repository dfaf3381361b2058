"""Installment schedule generation for negotiated debts"""

from datetime import date
from typing import List

from negotiation_gateway.domain.models import InstallmentBreakdown, InstallmentPlan, ScheduledInstallment
from negotiation_gateway.utils.date_utils import add_days, add_months

DOWN_PAYMENT_LEAD_DAYS = 2


def down_payment_date(plan: InstallmentPlan, as_of: date, lead_days: int = DOWN_PAYMENT_LEAD_DAYS) -> date:
    """Due date of installment #0: manual override, else as_of + lead days"""
    return plan.custom_dates.get(0) or add_days(as_of, lead_days)


def build_schedule(
    plan: InstallmentPlan,
    breakdown: InstallmentBreakdown,
    as_of: date,
    lead_days: int = DOWN_PAYMENT_LEAD_DAYS,
) -> List[ScheduledInstallment]:
    """
    Generate the ordered installment list for a plan.

    Requirements:
    - Installment #0 carries the down payment, when there is one
    - Manually set dates win over computed ones, for any installment
    - With a down payment, installment i falls i months after the down
      payment date; otherwise i-1 months after first_due_date
    - Months are added from the anchor date, clamped to month end
    - Last regular installment absorbs the division remainder

    Example:
        21000 total, 3000 down, 3 installments, as_of 2025-03-10 ->
        #0 3000 on 03-12, #1..#3 6000 on 04-12, 05-12, 06-12
    """
    installments: List[ScheduledInstallment] = []

    if plan.down_payment_cents > 0:
        anchor = down_payment_date(plan, as_of, lead_days)
        month_offset = 0
        installments.append(
            ScheduledInstallment(
                number=0,
                due_date=anchor,
                amount_cents=plan.down_payment_cents,
                is_custom_date=0 in plan.custom_dates,
            )
        )
    else:
        anchor = plan.first_due_date
        month_offset = -1

    for number in range(1, plan.installments_count + 1):
        custom = plan.custom_dates.get(number)
        due = custom or add_months(anchor, number + month_offset)

        amount = breakdown.installment_cents
        if number == plan.installments_count:
            amount += breakdown.remainder_cents

        installments.append(
            ScheduledInstallment(
                number=number,
                due_date=due,
                amount_cents=amount,
                is_custom_date=custom is not None,
            )
        )

    return installments
