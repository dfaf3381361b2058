"""Surcharge calculation and aggregation - core business logic for negotiated totals"""

from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from negotiation_gateway.domain.models import (
    BillingItem,
    CalculatedItem,
    InstallmentBreakdown,
    NegotiationSettings,
    Totals,
)
from negotiation_gateway.domain.exceptions import InvalidBillingItemError

DAYS_PER_MONTH = Decimal(30)
HUNDRED = Decimal(100)


def _to_cents(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def compute_overdue_item(item: BillingItem, settings: NegotiationSettings, as_of: date) -> CalculatedItem:
    """
    Calculate interest, monetary correction and late fee for one item.

    Rules:
    - Days overdue counted in whole calendar days; items not yet due have 0
    - Months overdue = days / 30 (flat month, fractional, kept as-is so old
      negotiations can be re-derived)
    - Interest and correction are pro-rata on months overdue
    - Late fee is flat, charged once as soon as the item is a day late
    - Each surcharge is rounded half-up to the cent before summing

    Example:
        R$100.00 due 60 days ago, 1%/0.5%/2% ->
        interest 200, correction 100, late fee 200, total 10500 cents
    """
    if item.value_cents < 0:
        raise InvalidBillingItemError(f"Billing item {item.id} has negative value {item.value_cents}")

    days_overdue = max(0, (as_of - item.due_date).days)
    months_overdue = Decimal(days_overdue) / DAYS_PER_MONTH
    value = Decimal(item.value_cents)

    interest = _to_cents(value * (settings.interest_rate_monthly / HUNDRED) * months_overdue)
    correction = _to_cents(value * (settings.correction_rate_monthly / HUNDRED) * months_overdue)
    late_fee = _to_cents(value * (settings.late_fee_percentage / HUNDRED)) if days_overdue > 0 else 0

    return CalculatedItem(
        item=item,
        days_overdue=days_overdue,
        interest_cents=interest,
        correction_cents=correction,
        late_fee_cents=late_fee,
        total_cents=item.value_cents + interest + correction + late_fee,
    )


def aggregate(items: Iterable[CalculatedItem]) -> Totals:
    """Sum per-item values into negotiation totals"""
    items = list(items)
    return Totals(
        original_cents=sum(c.item.value_cents for c in items),
        interest_cents=sum(c.interest_cents for c in items),
        correction_cents=sum(c.correction_cents for c in items),
        late_fee_cents=sum(c.late_fee_cents for c in items),
        negotiated_cents=sum(c.total_cents for c in items),
    )


def derive_per_installment(totals: Totals, down_payment_cents: int, installments_count: int) -> InstallmentBreakdown:
    """
    Split what is left after the down payment into equal installments.

    Floor division; the remainder (< installments_count cents) is reported
    separately and lands on the last installment of the schedule.
    A non-positive count yields a zero installment, which plan validation
    rejects before anything is built or stored.
    """
    amount_to_finance = totals.negotiated_cents - down_payment_cents

    if installments_count <= 0:
        return InstallmentBreakdown(amount_to_finance, 0, 0)

    base, remainder = divmod(amount_to_finance, installments_count)
    return InstallmentBreakdown(
        amount_to_finance_cents=amount_to_finance,
        installment_cents=base,
        remainder_cents=remainder,
    )
