"""
Negotiation wizard state machine.

Steps run debtor -> items -> calculation -> plan -> preview. Each step is an
immutable snapshot holding the validated step before it, so going back never
loses earlier input. Transitions return the next step or a Rejection; they
never raise for user-correctable problems.
"""

from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from typing import ClassVar, FrozenSet, Iterable, List, Sequence, Tuple, Union

from negotiation_gateway.domain.calculator import aggregate, compute_overdue_item, derive_per_installment
from negotiation_gateway.domain.installments import build_schedule
from negotiation_gateway.domain.models import (
    BillingItem,
    CalculatedItem,
    InstallmentBreakdown,
    InstallmentPlan,
    NegotiationSettings,
    ScheduledInstallment,
    Totals,
)


@dataclass(frozen=True)
class ValidationIssue:
    """User-correctable problem blocking the next step"""

    code: str
    message: str


@dataclass(frozen=True)
class Rejection:
    """Transition refused; the current step stays in place"""

    issues: Tuple[ValidationIssue, ...]


@dataclass(frozen=True)
class DebtorStep:
    name: ClassVar[str] = "debtor"

    settings: NegotiationSettings


@dataclass(frozen=True)
class ItemsStep:
    name: ClassVar[str] = "items"

    settings: NegotiationSettings
    employer_id: str
    eligible: Tuple[BillingItem, ...]
    selected_ids: FrozenSet[str] = frozenset()

    @property
    def selected(self) -> List[BillingItem]:
        return [item for item in self.eligible if item.id in self.selected_ids]


@dataclass(frozen=True)
class CalculationStep:
    name: ClassVar[str] = "calculation"

    selection: ItemsStep
    as_of: date
    calculated: Tuple[CalculatedItem, ...]
    totals: Totals

    @property
    def settings(self) -> NegotiationSettings:
        return self.selection.settings

    @property
    def employer_id(self) -> str:
        return self.selection.employer_id


@dataclass(frozen=True)
class PlanStep:
    name: ClassVar[str] = "plan"

    calculation: CalculationStep
    plan: InstallmentPlan

    @property
    def settings(self) -> NegotiationSettings:
        return self.calculation.settings

    @property
    def totals(self) -> Totals:
        return self.calculation.totals

    @property
    def breakdown(self) -> InstallmentBreakdown:
        return derive_per_installment(self.totals, self.plan.down_payment_cents, self.plan.installments_count)

    @property
    def issues(self) -> Tuple[ValidationIssue, ...]:
        return validate_plan(self)

    def schedule(self, as_of: date, lead_days: int = 2) -> List[ScheduledInstallment]:
        """Live preview; empty while the plan is invalid"""
        if self.issues:
            return []
        return build_schedule(self.plan, self.breakdown, as_of, lead_days)


@dataclass(frozen=True)
class PreviewStep:
    name: ClassVar[str] = "preview"

    planning: PlanStep
    breakdown: InstallmentBreakdown
    schedule: Tuple[ScheduledInstallment, ...] = field(default_factory=tuple)

    @property
    def settings(self) -> NegotiationSettings:
        return self.planning.settings

    @property
    def calculation(self) -> CalculationStep:
        return self.planning.calculation

    @property
    def plan(self) -> InstallmentPlan:
        return self.planning.plan

    @property
    def totals(self) -> Totals:
        return self.planning.totals


WizardStep = Union[DebtorStep, ItemsStep, CalculationStep, PlanStep, PreviewStep]


def _reject(code: str, message: str) -> Rejection:
    return Rejection((ValidationIssue(code, message),))


def choose_debtor(step: DebtorStep, employer_id: str, items: Sequence[BillingItem]) -> Union[ItemsStep, Rejection]:
    """Move to item selection with the employer's eligible items, oldest due first"""
    if not employer_id:
        return _reject("debtor_required", "Select an employer to continue")

    eligible = sorted(
        (item for item in items if item.employer_id == employer_id and item.is_eligible),
        key=lambda item: item.due_date,
    )
    return ItemsStep(settings=step.settings, employer_id=employer_id, eligible=tuple(eligible))


def select_items(step: ItemsStep, item_ids: Iterable[str]) -> Union[ItemsStep, Rejection]:
    """Replace the selection; ids must belong to the eligible set"""
    wanted = frozenset(item_ids)
    known = {item.id for item in step.eligible}
    unknown = wanted - known
    if unknown:
        return _reject("unknown_items", f"Items not eligible for negotiation: {', '.join(sorted(unknown))}")
    return replace(step, selected_ids=wanted)


def select_all(step: ItemsStep) -> ItemsStep:
    return replace(step, selected_ids=frozenset(item.id for item in step.eligible))


def calculate(step: ItemsStep, as_of: date) -> Union[CalculationStep, Rejection]:
    """Freeze surcharges for the selected items as of the given date"""
    if not step.selected_ids:
        return _reject("no_items_selected", "Select at least one contribution")

    if not step.settings.allow_partial_selection and len(step.selected_ids) != len(step.eligible):
        return _reject(
            "partial_selection_not_allowed",
            "All pending contributions must be included in the negotiation",
        )

    calculated = tuple(compute_overdue_item(item, step.settings, as_of) for item in step.selected)
    return CalculationStep(selection=step, as_of=as_of, calculated=calculated, totals=aggregate(calculated))


def start_plan(step: CalculationStep, first_due_date: date, validity_days: int = 30) -> Union[PlanStep, Rejection]:
    """Open the installments step with a single installment and no down payment"""
    if not step.calculated:
        return _reject("no_calculated_items", "Nothing to negotiate")

    plan = InstallmentPlan(
        installments_count=1,
        down_payment_cents=0,
        first_due_date=first_due_date,
        validity_days=validity_days,
    )
    return PlanStep(calculation=step, plan=plan)


def update_plan(step: PlanStep, plan: InstallmentPlan) -> PlanStep:
    """Store new plan input; validation is re-read from PlanStep.issues"""
    return replace(step, plan=plan)


def validate_plan(step: PlanStep) -> Tuple[ValidationIssue, ...]:
    """All constraints that must hold before the preview"""
    settings = step.settings
    plan = step.plan
    total = step.totals.negotiated_cents
    issues: List[ValidationIssue] = []

    if not 1 <= plan.installments_count <= settings.max_installments:
        issues.append(
            ValidationIssue(
                "installments_count_out_of_range",
                f"Installments must be between 1 and {settings.max_installments}",
            )
        )

    if not 0 <= plan.down_payment_cents <= total:
        issues.append(ValidationIssue("down_payment_out_of_range", "Down payment must be between zero and the total"))

    if plan.installments_count >= 1 and step.breakdown.installment_cents <= 0:
        issues.append(
            ValidationIssue(
                "installment_not_positive",
                "Regular installments must be worth more than zero; lower the down payment or the count",
            )
        )
    elif plan.installments_count >= 1 and step.breakdown.installment_cents < settings.min_installment_cents:
        issues.append(
            ValidationIssue(
                "installment_below_minimum",
                f"Installment value must be at least {settings.min_installment_cents} cents",
            )
        )

    if settings.require_down_payment:
        required = Decimal(total) * settings.min_down_payment_percentage / Decimal(100)
        if Decimal(plan.down_payment_cents) < required:
            issues.append(
                ValidationIssue(
                    "down_payment_below_minimum",
                    f"Down payment must be at least {settings.min_down_payment_percentage}% of the total",
                )
            )

    lowest = 0 if plan.down_payment_cents > 0 else 1
    stray = sorted(n for n in plan.custom_dates if not lowest <= n <= plan.installments_count)
    if stray:
        issues.append(
            ValidationIssue(
                "custom_date_out_of_range",
                f"Custom dates set for installments outside the plan: {stray}",
            )
        )

    if plan.validity_days < 1:
        issues.append(ValidationIssue("validity_out_of_range", "Validity must be at least one day"))

    return tuple(issues)


def preview(step: PlanStep, as_of: date, lead_days: int = 2) -> Union[PreviewStep, Rejection]:
    """Lock the plan for review"""
    issues = validate_plan(step)
    if issues:
        return Rejection(issues)

    breakdown = step.breakdown
    schedule = build_schedule(step.plan, breakdown, as_of, lead_days)
    return PreviewStep(planning=step, breakdown=breakdown, schedule=tuple(schedule))


def back(step: WizardStep) -> WizardStep:
    """Previous step with its data intact; the first step stays put"""
    if isinstance(step, PreviewStep):
        return step.planning
    if isinstance(step, PlanStep):
        return step.calculation
    if isinstance(step, CalculationStep):
        return step.selection
    if isinstance(step, ItemsStep):
        return DebtorStep(settings=step.settings)
    return step
