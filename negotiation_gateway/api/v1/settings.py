"""/v1/settings/{clinic_id} - Negotiation rates and plan limits per clinic"""

import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from negotiation_gateway.api.v1.schemas import SettingsResponse, SettingsSchema
from negotiation_gateway.domain.models import NegotiationSettings
from negotiation_gateway.infrastructure.database.session import get_db
from negotiation_gateway.infrastructure.database.repositories import SettingsRepository

router = APIRouter()


def _to_response(clinic_id: str, settings: NegotiationSettings, is_default: bool) -> SettingsResponse:
    return SettingsResponse(
        clinic_id=clinic_id,
        is_default=is_default,
        interest_rate_monthly=settings.interest_rate_monthly,
        correction_rate_monthly=settings.correction_rate_monthly,
        late_fee_percentage=settings.late_fee_percentage,
        legal_basis=settings.legal_basis,
        max_installments=settings.max_installments,
        min_installment_cents=settings.min_installment_cents,
        allow_partial_selection=settings.allow_partial_selection,
        require_down_payment=settings.require_down_payment,
        min_down_payment_percentage=settings.min_down_payment_percentage,
    )


@router.get("/settings/{clinic_id}", response_model=SettingsResponse)
def get_settings(clinic_id: str, db: Session = Depends(get_db)):
    """Clinic settings, or the defaults new negotiations would use"""
    stored = SettingsRepository(db).get_for_clinic(clinic_id)
    if stored is None:
        return _to_response(clinic_id, NegotiationSettings.defaults(), is_default=True)
    return _to_response(clinic_id, stored, is_default=False)


@router.put("/settings/{clinic_id}", response_model=SettingsResponse)
def put_settings(clinic_id: str, request_body: SettingsSchema, db: Session = Depends(get_db)):
    """
    Save settings for the clinic.

    Only wizard sessions started afterwards see the new values.
    """
    settings = NegotiationSettings(**request_body.model_dump())
    SettingsRepository(db).upsert(clinic_id, settings)
    db.commit()

    logging.info("Negotiation settings saved", extra={"clinic_id": clinic_id, "step": "settings_update"})
    return _to_response(clinic_id, settings, is_default=False)
