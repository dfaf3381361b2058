"""GET /v1/negotiations - Stored negotiations with their items and installments"""

import uuid
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from negotiation_gateway.api.v1.schemas import (
    InstallmentSchema,
    NegotiationItemSchema,
    NegotiationListResponse,
    NegotiationResponse,
    NegotiationSummary,
    TotalsSchema,
)
from negotiation_gateway.infrastructure.database.session import get_db
from negotiation_gateway.infrastructure.database.repositories import NegotiationRepository

router = APIRouter()


@router.get("/negotiations/{negotiation_id}", response_model=NegotiationResponse)
def get_negotiation(negotiation_id: str, db: Session = Depends(get_db)):
    """
    Retrieve a negotiation exactly as it was saved.

    Returns:
        Header totals, per-contribution snapshot and installment schedule
    """
    try:
        negotiation_uuid = uuid.UUID(negotiation_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid negotiation ID format")

    repo = NegotiationRepository(db)
    negotiation = repo.get_by_id(negotiation_uuid)

    if not negotiation:
        raise HTTPException(status_code=404, detail="Negotiation not found")

    items = [
        NegotiationItemSchema(
            contribution_id=str(item.contribution_id),
            contribution_type_name=item.contribution_type_name,
            competence_month=item.competence_month,
            competence_year=item.competence_year,
            due_date=item.due_date,
            original_cents=item.original_value,
            days_overdue=item.days_overdue,
            interest_cents=item.interest_value,
            correction_cents=item.correction_value,
            late_fee_cents=item.late_fee_value,
            total_cents=item.total_value,
        )
        for item in sorted(negotiation.items, key=lambda i: i.due_date)
    ]

    installments = [
        InstallmentSchema(
            number=inst.installment_number,
            due_date=inst.due_date,
            amount_cents=inst.value,
            status=inst.status,
        )
        for inst in negotiation.installments
    ]

    return NegotiationResponse(
        negotiation_id=str(negotiation.id),
        negotiation_code=negotiation.negotiation_code,
        clinic_id=negotiation.clinic_id,
        employer_id=negotiation.employer_id,
        status=negotiation.status,
        totals=TotalsSchema(
            original_cents=negotiation.total_original_value,
            interest_cents=negotiation.total_interest,
            correction_cents=negotiation.total_monetary_correction,
            late_fee_cents=negotiation.total_late_fee,
            negotiated_cents=negotiation.total_negotiated_value,
        ),
        total_negotiated_cents=negotiation.total_negotiated_value,
        down_payment_cents=negotiation.down_payment_value,
        installments_count=negotiation.installments_count,
        installment_cents=negotiation.installment_value,
        first_due_date=negotiation.first_due_date,
        applied_interest_rate=negotiation.applied_interest_rate,
        applied_correction_rate=negotiation.applied_correction_rate,
        applied_late_fee_rate=negotiation.applied_late_fee_rate,
        legal_basis=negotiation.legal_basis,
        created_by=negotiation.created_by,
        expires_at=negotiation.expires_at.isoformat(),
        created_at=negotiation.created_at.isoformat(),
        items=items,
        installments=installments,
    )


@router.get("/negotiations", response_model=NegotiationListResponse)
def list_negotiations(
    clinic_id: str = Query(..., description="Clinic identifier"),
    employer_id: str = Query(..., description="Employer identifier"),
    db: Session = Depends(get_db),
):
    """Recent negotiations for an employer, newest first"""
    repo = NegotiationRepository(db)
    negotiations = repo.list_by_employer(clinic_id, employer_id, limit=20)

    return NegotiationListResponse(
        employer_id=employer_id,
        negotiations=[
            NegotiationSummary(
                negotiation_id=str(n.id),
                negotiation_code=n.negotiation_code,
                employer_id=n.employer_id,
                status=n.status,
                total_negotiated_cents=n.total_negotiated_value,
                installments_count=n.installments_count,
                created_at=n.created_at.isoformat(),
            )
            for n in negotiations
        ],
    )
