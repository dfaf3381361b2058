"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional


class WizardStartRequest(BaseModel):
    """Request body for POST /v1/wizard"""

    clinic_id: str = Field(..., min_length=1, description="Clinic (organization) identifier")
    user_id: str = Field(..., min_length=1, description="User creating the negotiation")


class DebtorRequest(BaseModel):
    employer_id: str = Field(..., description="Employer whose contributions will be negotiated")


class ItemsRequest(BaseModel):
    contribution_ids: List[str] = Field(default_factory=list)
    select_all: bool = False


class PlanStartRequest(BaseModel):
    first_due_date: Optional[date] = None


class PlanRequest(BaseModel):
    """Installment choices; re-sent on every change for a live preview"""

    installments_count: int
    down_payment_cents: int = 0
    first_due_date: date
    custom_dates: Dict[int, date] = Field(default_factory=dict, description="Installment number -> manual due date")
    validity_days: Optional[int] = Field(None, ge=1)


class IssueSchema(BaseModel):
    code: str
    message: str


class BillingItemSchema(BaseModel):
    id: str
    category_name: str
    competence_month: int
    competence_year: int
    value_cents: int
    due_date: date
    status: str


class CalculatedItemSchema(BaseModel):
    contribution_id: str
    category_name: str
    competence_month: int
    competence_year: int
    due_date: date
    original_cents: int
    days_overdue: int
    interest_cents: int
    correction_cents: int
    late_fee_cents: int
    total_cents: int


class TotalsSchema(BaseModel):
    original_cents: int
    interest_cents: int
    correction_cents: int
    late_fee_cents: int
    negotiated_cents: int


class PlanSchema(BaseModel):
    installments_count: int
    down_payment_cents: int
    first_due_date: date
    custom_dates: Dict[int, date]
    validity_days: int
    amount_to_finance_cents: int
    installment_cents: int


class InstallmentSchema(BaseModel):
    """Single installment in a negotiated plan"""

    number: int
    due_date: date
    amount_cents: int
    is_custom_date: bool = False
    status: str = "pending"


class WizardResponse(BaseModel):
    """Snapshot of a wizard session for the UI"""

    session_id: str
    step: str
    employer_id: Optional[str] = None
    eligible_items: List[BillingItemSchema] = Field(default_factory=list)
    selected_ids: List[str] = Field(default_factory=list)
    as_of: Optional[date] = None
    calculated_items: List[CalculatedItemSchema] = Field(default_factory=list)
    totals: Optional[TotalsSchema] = None
    plan: Optional[PlanSchema] = None
    schedule: List[InstallmentSchema] = Field(default_factory=list)
    issues: List[IssueSchema] = Field(default_factory=list)
    committing: bool = False
    negotiation_id: Optional[str] = None
    negotiation_code: Optional[str] = None


class CommitResponse(BaseModel):
    """Response for POST /v1/wizard/{session_id}/commit"""

    negotiation_id: str
    negotiation_code: str
    status: str = "simulation"
    expires_at: datetime
    installments: List[InstallmentSchema]


class NegotiationItemSchema(BaseModel):
    contribution_id: str
    contribution_type_name: str
    competence_month: int
    competence_year: int
    due_date: date
    original_cents: int
    days_overdue: int
    interest_cents: int
    correction_cents: int
    late_fee_cents: int
    total_cents: int


class NegotiationSummary(BaseModel):
    negotiation_id: str
    negotiation_code: str
    employer_id: str
    status: str
    total_negotiated_cents: int
    installments_count: int
    created_at: str


class NegotiationResponse(NegotiationSummary):
    """Response for GET /v1/negotiations/{negotiation_id}"""

    clinic_id: str
    totals: TotalsSchema
    down_payment_cents: int
    installment_cents: int
    first_due_date: date
    applied_interest_rate: Decimal
    applied_correction_rate: Decimal
    applied_late_fee_rate: Decimal
    legal_basis: Optional[str] = None
    created_by: str
    expires_at: str
    items: List[NegotiationItemSchema]
    installments: List[InstallmentSchema]


class NegotiationListResponse(BaseModel):
    employer_id: str
    negotiations: List[NegotiationSummary]


class SettingsSchema(BaseModel):
    """Negotiation settings of a clinic (GET returns defaults when none saved)"""

    interest_rate_monthly: Decimal = Field(..., ge=0, le=100)
    correction_rate_monthly: Decimal = Field(..., ge=0, le=100)
    late_fee_percentage: Decimal = Field(..., ge=0, le=100)
    legal_basis: str = ""
    max_installments: int = Field(..., ge=1)
    min_installment_cents: int = Field(..., ge=0)
    allow_partial_selection: bool = True
    require_down_payment: bool = False
    min_down_payment_percentage: Decimal = Field(Decimal("10"), ge=0, le=100)


class SettingsResponse(SettingsSchema):
    clinic_id: str
    is_default: bool
