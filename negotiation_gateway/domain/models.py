"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, Optional

# Billing item statuses
PENDING = "pending"
OVERDUE = "overdue"
PAID = "paid"
CANCELLED = "cancelled"
AWAITING_VALUE = "awaiting_value"

ELIGIBLE_STATUSES = (PENDING, OVERDUE)

# Negotiation / installment statuses set by this service
SIMULATION = "simulation"
INSTALLMENT_PENDING = "pending"


@dataclass(frozen=True)
class BillingItem:
    """Contribution owed by an employer, as read from the billing tables"""

    id: str
    employer_id: str
    category_id: str
    category_name: str
    competence_month: int
    competence_year: int
    value_cents: int
    due_date: date
    status: str  # pending | overdue | paid | cancelled | awaiting_value
    negotiation_id: Optional[str] = None

    @property
    def is_eligible(self) -> bool:
        return self.status in ELIGIBLE_STATUSES and self.negotiation_id is None


@dataclass(frozen=True)
class NegotiationSettings:
    """Per-clinic rates and plan constraints"""

    interest_rate_monthly: Decimal
    correction_rate_monthly: Decimal
    late_fee_percentage: Decimal
    legal_basis: str
    max_installments: int
    min_installment_cents: int
    allow_partial_selection: bool
    require_down_payment: bool
    min_down_payment_percentage: Decimal

    @classmethod
    def defaults(cls) -> "NegotiationSettings":
        """Used when the clinic never saved its own settings"""
        return cls(
            interest_rate_monthly=Decimal("1.0"),
            correction_rate_monthly=Decimal("0.5"),
            late_fee_percentage=Decimal("2.0"),
            legal_basis="",
            max_installments=12,
            min_installment_cents=10_000,  # R$100
            allow_partial_selection=True,
            require_down_payment=False,
            min_down_payment_percentage=Decimal("10"),
        )


@dataclass(frozen=True)
class CalculatedItem:
    """Billing item with surcharges as of the calculation date"""

    item: BillingItem
    days_overdue: int
    interest_cents: int
    correction_cents: int
    late_fee_cents: int
    total_cents: int


@dataclass(frozen=True)
class Totals:
    """Negotiation-level sums over calculated items"""

    original_cents: int
    interest_cents: int
    correction_cents: int
    late_fee_cents: int
    negotiated_cents: int


@dataclass(frozen=True)
class InstallmentBreakdown:
    """How the amount left after the down payment splits across installments"""

    amount_to_finance_cents: int
    installment_cents: int
    remainder_cents: int  # added to the last regular installment


@dataclass(frozen=True)
class InstallmentPlan:
    """User choices on the installments step"""

    installments_count: int
    down_payment_cents: int
    first_due_date: date
    custom_dates: Dict[int, date] = field(default_factory=dict)
    validity_days: int = 30


@dataclass(frozen=True)
class ScheduledInstallment:
    """Single payment in a negotiated plan; number 0 is the down payment"""

    number: int
    due_date: date
    amount_cents: int
    is_custom_date: bool = False
