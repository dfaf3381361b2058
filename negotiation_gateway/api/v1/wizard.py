"""/v1/wizard - Step-by-step negotiation wizard"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from negotiation_gateway.api.v1.schemas import (
    BillingItemSchema,
    CalculatedItemSchema,
    CommitResponse,
    DebtorRequest,
    InstallmentSchema,
    IssueSchema,
    ItemsRequest,
    PlanRequest,
    PlanSchema,
    PlanStartRequest,
    TotalsSchema,
    WizardResponse,
    WizardStartRequest,
)
from negotiation_gateway.api.dependencies import get_code_client, get_request_id, get_wizard_store, lookup_wizard
from negotiation_gateway.infrastructure.database.session import get_db
from negotiation_gateway.infrastructure.clients.codes import CodeClient
from negotiation_gateway.domain.exceptions import (
    CodeAllocationError,
    CodeServiceError,
    CommitInProgressError,
    InvalidStepError,
    PersistenceError,
)
from negotiation_gateway.domain.workflow import CalculationStep, ItemsStep, PlanStep, PreviewStep, Rejection
from negotiation_gateway.services.wizard import NegotiationWizard, WizardStore

router = APIRouter()


def _render(wizard: NegotiationWizard) -> WizardResponse:
    """Flatten the current step into what the UI displays"""
    step = wizard.step
    response = WizardResponse(session_id=wizard.id, step=step.name, committing=wizard.committing)

    selection: Optional[ItemsStep] = None
    calculation: Optional[CalculationStep] = None
    planning: Optional[PlanStep] = None

    if isinstance(step, ItemsStep):
        selection = step
    elif isinstance(step, CalculationStep):
        calculation = step
    elif isinstance(step, PlanStep):
        planning = step
    elif isinstance(step, PreviewStep):
        planning = step.planning

    if planning is not None:
        calculation = planning.calculation
    if calculation is not None:
        selection = calculation.selection

    if selection is not None:
        response.employer_id = selection.employer_id
        response.eligible_items = [
            BillingItemSchema(
                id=item.id,
                category_name=item.category_name,
                competence_month=item.competence_month,
                competence_year=item.competence_year,
                value_cents=item.value_cents,
                due_date=item.due_date,
                status=item.status,
            )
            for item in selection.eligible
        ]
        response.selected_ids = sorted(selection.selected_ids)

    if calculation is not None:
        response.as_of = calculation.as_of
        response.calculated_items = [
            CalculatedItemSchema(
                contribution_id=c.item.id,
                category_name=c.item.category_name,
                competence_month=c.item.competence_month,
                competence_year=c.item.competence_year,
                due_date=c.item.due_date,
                original_cents=c.item.value_cents,
                days_overdue=c.days_overdue,
                interest_cents=c.interest_cents,
                correction_cents=c.correction_cents,
                late_fee_cents=c.late_fee_cents,
                total_cents=c.total_cents,
            )
            for c in calculation.calculated
        ]
        totals = calculation.totals
        response.totals = TotalsSchema(
            original_cents=totals.original_cents,
            interest_cents=totals.interest_cents,
            correction_cents=totals.correction_cents,
            late_fee_cents=totals.late_fee_cents,
            negotiated_cents=totals.negotiated_cents,
        )

    if planning is not None:
        plan = planning.plan
        breakdown = planning.breakdown
        response.plan = PlanSchema(
            installments_count=plan.installments_count,
            down_payment_cents=plan.down_payment_cents,
            first_due_date=plan.first_due_date,
            custom_dates=plan.custom_dates,
            validity_days=plan.validity_days,
            amount_to_finance_cents=breakdown.amount_to_finance_cents,
            installment_cents=breakdown.installment_cents,
        )
        response.issues = [IssueSchema(code=i.code, message=i.message) for i in planning.issues]
        schedule = step.schedule if isinstance(step, PreviewStep) else planning.schedule(wizard.today(), wizard.lead_days)
        response.schedule = [
            InstallmentSchema(
                number=inst.number,
                due_date=inst.due_date,
                amount_cents=inst.amount_cents,
                is_custom_date=inst.is_custom_date,
            )
            for inst in schedule
        ]

    if wizard.result is not None:
        response.negotiation_id = str(wizard.result.negotiation_id)
        response.negotiation_code = wizard.result.negotiation_code

    return response


def _check(rejection: Optional[Rejection]) -> None:
    if rejection is not None:
        raise HTTPException(
            status_code=422,
            detail={"issues": [{"code": i.code, "message": i.message} for i in rejection.issues]},
        )


def _session(session_id: str, store: WizardStore = Depends(get_wizard_store)) -> NegotiationWizard:
    return lookup_wizard(store, session_id)


@router.post("/wizard", response_model=WizardResponse, status_code=201)
def start_wizard(
    request_body: WizardStartRequest,
    db: Session = Depends(get_db),
    store: WizardStore = Depends(get_wizard_store),
):
    """Open a negotiation session; the clinic's settings are fixed from here on"""
    wizard = NegotiationWizard.start(db, request_body.clinic_id, request_body.user_id)
    store.add(wizard)
    return _render(wizard)


@router.get("/wizard/{session_id}", response_model=WizardResponse)
def get_wizard(wizard: NegotiationWizard = Depends(_session)):
    return _render(wizard)


@router.delete("/wizard/{session_id}", status_code=204)
def discard_wizard(session_id: str, store: WizardStore = Depends(get_wizard_store)):
    store.discard(session_id)


@router.post("/wizard/{session_id}/debtor", response_model=WizardResponse)
def choose_debtor(
    request_body: DebtorRequest,
    wizard: NegotiationWizard = Depends(_session),
    db: Session = Depends(get_db),
):
    """Select the employer and load its pending/overdue contributions"""
    try:
        _check(wizard.choose_debtor(db, request_body.employer_id))
    except InvalidStepError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except SQLAlchemyError as e:
        logging.error(f"Failed to load contributions: {e}")
        raise HTTPException(status_code=503, detail="Could not load contributions")
    return _render(wizard)


@router.post("/wizard/{session_id}/items", response_model=WizardResponse)
def select_items(request_body: ItemsRequest, wizard: NegotiationWizard = Depends(_session)):
    try:
        if request_body.select_all:
            wizard.select_all_items()
        else:
            _check(wizard.select_items(request_body.contribution_ids))
    except InvalidStepError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _render(wizard)


@router.post("/wizard/{session_id}/calculate", response_model=WizardResponse)
def calculate(wizard: NegotiationWizard = Depends(_session)):
    """Apply interest, correction and late fee to the selected contributions"""
    try:
        _check(wizard.calculate())
    except InvalidStepError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _render(wizard)


@router.post("/wizard/{session_id}/installments", response_model=WizardResponse)
def start_installments(request_body: PlanStartRequest, wizard: NegotiationWizard = Depends(_session)):
    try:
        _check(wizard.start_plan(request_body.first_due_date))
    except InvalidStepError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _render(wizard)


@router.put("/wizard/{session_id}/plan", response_model=WizardResponse)
def update_plan(request_body: PlanRequest, wizard: NegotiationWizard = Depends(_session)):
    """Change installment inputs; outstanding problems come back in 'issues'"""
    try:
        wizard.update_plan(
            installments_count=request_body.installments_count,
            down_payment_cents=request_body.down_payment_cents,
            first_due_date=request_body.first_due_date,
            custom_dates=request_body.custom_dates,
            validity_days=request_body.validity_days,
        )
    except InvalidStepError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _render(wizard)


@router.post("/wizard/{session_id}/preview", response_model=WizardResponse)
def preview(wizard: NegotiationWizard = Depends(_session)):
    try:
        _check(wizard.preview())
    except InvalidStepError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _render(wizard)


@router.post("/wizard/{session_id}/back", response_model=WizardResponse)
def go_back(wizard: NegotiationWizard = Depends(_session)):
    try:
        wizard.back()
    except (InvalidStepError, CommitInProgressError) as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _render(wizard)


@router.post("/wizard/{session_id}/commit", response_model=CommitResponse, status_code=201)
async def commit(
    request: Request,
    wizard: NegotiationWizard = Depends(_session),
    db: Session = Depends(get_db),
    code_client: CodeClient = Depends(get_code_client),
    store: WizardStore = Depends(get_wizard_store),
):
    """
    Save the previewed negotiation and close the session.

    Code clashes are retried internally; every failure leaves the session on
    the preview step so the user can simply try again.
    """
    request_id = get_request_id(request)

    try:
        result = await wizard.commit(db, code_client, request_id=request_id)

    except (InvalidStepError, CommitInProgressError) as e:
        raise HTTPException(status_code=409, detail=str(e))

    except CodeAllocationError as e:
        logging.error(f"Code allocation exhausted: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=409, detail="Could not allocate a negotiation code, please try again")

    except CodeServiceError as e:
        logging.error(f"Code service error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Code service unavailable")

    except PersistenceError as e:
        logging.error(f"Persistence error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Could not save the negotiation")

    store.discard(wizard.id)
    return CommitResponse(
        negotiation_id=str(result.negotiation_id),
        negotiation_code=result.negotiation_code,
        expires_at=result.expires_at,
        installments=[
            InstallmentSchema(
                number=inst.number,
                due_date=inst.due_date,
                amount_cents=inst.amount_cents,
                is_custom_date=inst.is_custom_date,
            )
            for inst in result.schedule
        ],
    )
