"""Data access layer for negotiation entities"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from negotiation_gateway.infrastructure.database.models import (
    DebtNegotiation,
    EmployerContribution,
    NegotiationInstallmentRecord,
    NegotiationItemRecord,
    NegotiationSettingsRecord,
)
from negotiation_gateway.domain.models import (
    ELIGIBLE_STATUSES,
    INSTALLMENT_PENDING,
    SIMULATION,
    BillingItem,
    CalculatedItem,
    InstallmentBreakdown,
    InstallmentPlan,
    NegotiationSettings,
    ScheduledInstallment,
    Totals,
)
from negotiation_gateway.domain.exceptions import NegotiationCodeConflict


class SettingsRepository:
    """Repository for per-clinic negotiation settings"""

    def __init__(self, db: Session):
        self.db = db

    def _get_record(self, clinic_id: str) -> Optional[NegotiationSettingsRecord]:
        return (
            self.db.query(NegotiationSettingsRecord)
            .filter(NegotiationSettingsRecord.clinic_id == clinic_id)
            .first()
        )

    def get_for_clinic(self, clinic_id: str) -> Optional[NegotiationSettings]:
        """Stored settings, or None when the clinic never saved any"""
        record = self._get_record(clinic_id)
        if record is None:
            return None

        min_down = record.min_down_payment_percentage
        return NegotiationSettings(
            interest_rate_monthly=Decimal(record.interest_rate_monthly),
            correction_rate_monthly=Decimal(record.monetary_correction_monthly),
            late_fee_percentage=Decimal(record.late_fee_percentage),
            legal_basis=record.legal_basis or "",
            max_installments=record.max_installments,
            min_installment_cents=record.min_installment_value,
            allow_partial_selection=record.allow_partial_negotiation,
            require_down_payment=record.require_down_payment,
            min_down_payment_percentage=Decimal(min_down) if min_down is not None else Decimal("10"),
        )

    def get_or_default(self, clinic_id: str) -> NegotiationSettings:
        return self.get_for_clinic(clinic_id) or NegotiationSettings.defaults()

    def upsert(self, clinic_id: str, settings: NegotiationSettings) -> NegotiationSettingsRecord:
        """Create or overwrite the clinic's settings"""
        record = self._get_record(clinic_id)
        if record is None:
            record = NegotiationSettingsRecord(clinic_id=clinic_id)
            self.db.add(record)

        record.interest_rate_monthly = settings.interest_rate_monthly
        record.monetary_correction_monthly = settings.correction_rate_monthly
        record.late_fee_percentage = settings.late_fee_percentage
        record.legal_basis = settings.legal_basis
        record.max_installments = settings.max_installments
        record.min_installment_value = settings.min_installment_cents
        record.allow_partial_negotiation = settings.allow_partial_selection
        record.require_down_payment = settings.require_down_payment
        record.min_down_payment_percentage = settings.min_down_payment_percentage

        self.db.flush()
        return record


class ContributionRepository:
    """Read-only access to employer contributions"""

    def __init__(self, db: Session):
        self.db = db

    def list_eligible(self, clinic_id: str, employer_id: str) -> List[BillingItem]:
        """Pending/overdue contributions not attached to a negotiation, oldest due first"""
        rows = (
            self.db.query(EmployerContribution)
            .options(joinedload(EmployerContribution.contribution_type))
            .filter(
                EmployerContribution.clinic_id == clinic_id,
                EmployerContribution.employer_id == employer_id,
                EmployerContribution.status.in_(ELIGIBLE_STATUSES),
                EmployerContribution.negotiation_id.is_(None),
            )
            .order_by(EmployerContribution.due_date.asc())
            .all()
        )

        return [
            BillingItem(
                id=str(row.id),
                employer_id=row.employer_id,
                category_id=str(row.contribution_type_id),
                category_name=row.contribution_type.name if row.contribution_type else "",
                competence_month=row.competence_month,
                competence_year=row.competence_year,
                value_cents=row.value,
                due_date=row.due_date,
                status=row.status,
            )
            for row in rows
        ]


class NegotiationRepository:
    """Create-only repository for negotiations, their items and installments"""

    def __init__(self, db: Session):
        self.db = db

    def code_exists(self, clinic_id: str, code: str) -> bool:
        return (
            self.db.query(DebtNegotiation.id)
            .filter(DebtNegotiation.clinic_id == clinic_id, DebtNegotiation.negotiation_code == code)
            .first()
            is not None
        )

    def create_negotiation(
        self,
        clinic_id: str,
        employer_id: str,
        code: str,
        totals: Totals,
        plan: InstallmentPlan,
        breakdown: InstallmentBreakdown,
        settings: NegotiationSettings,
        created_by: str,
        expires_at: datetime,
    ) -> DebtNegotiation:
        """
        Insert the negotiation header in 'simulation' status.

        Must be the first write of the transaction: a code clash rolls the
        session back before NegotiationCodeConflict is raised.

        Raises:
            NegotiationCodeConflict: Code already used by this clinic
        """
        if self.code_exists(clinic_id, code):
            raise NegotiationCodeConflict(code)

        db_negotiation = DebtNegotiation(
            clinic_id=clinic_id,
            employer_id=employer_id,
            negotiation_code=code,
            status=SIMULATION,
            total_original_value=totals.original_cents,
            total_interest=totals.interest_cents,
            total_monetary_correction=totals.correction_cents,
            total_late_fee=totals.late_fee_cents,
            total_negotiated_value=totals.negotiated_cents,
            down_payment_value=plan.down_payment_cents,
            installments_count=plan.installments_count,
            installment_value=breakdown.installment_cents,
            first_due_date=plan.first_due_date,
            applied_interest_rate=settings.interest_rate_monthly,
            applied_correction_rate=settings.correction_rate_monthly,
            applied_late_fee_rate=settings.late_fee_percentage,
            legal_basis=settings.legal_basis or None,
            created_by=created_by,
            expires_at=expires_at,
        )
        self.db.add(db_negotiation)

        try:
            self.db.flush()  # Get ID and surface unique violations now
        except IntegrityError:
            self.db.rollback()
            # Another session took the code between the check and the insert
            if self.code_exists(clinic_id, code):
                raise NegotiationCodeConflict(code)
            raise

        return db_negotiation

    def add_items(self, negotiation_id: uuid.UUID, calculated: Sequence[CalculatedItem]) -> None:
        """Snapshot each negotiated contribution"""
        for item in calculated:
            self.db.add(
                NegotiationItemRecord(
                    negotiation_id=negotiation_id,
                    contribution_id=uuid.UUID(item.item.id),
                    original_value=item.item.value_cents,
                    due_date=item.item.due_date,
                    competence_month=item.item.competence_month,
                    competence_year=item.item.competence_year,
                    contribution_type_name=item.item.category_name,
                    days_overdue=item.days_overdue,
                    interest_value=item.interest_cents,
                    correction_value=item.correction_cents,
                    late_fee_value=item.late_fee_cents,
                    total_value=item.total_cents,
                )
            )
        self.db.flush()

    def add_installments(self, negotiation_id: uuid.UUID, schedule: Sequence[ScheduledInstallment]) -> None:
        for inst in schedule:
            self.db.add(
                NegotiationInstallmentRecord(
                    negotiation_id=negotiation_id,
                    installment_number=inst.number,
                    value=inst.amount_cents,
                    due_date=inst.due_date,
                    status=INSTALLMENT_PENDING,
                )
            )
        self.db.flush()

    def get_by_id(self, negotiation_id: uuid.UUID) -> Optional[DebtNegotiation]:
        """Fetch negotiation with items and installments"""
        return (
            self.db.query(DebtNegotiation)
            .options(joinedload(DebtNegotiation.items), joinedload(DebtNegotiation.installments))
            .filter(DebtNegotiation.id == negotiation_id)
            .first()
        )

    def list_by_employer(self, clinic_id: str, employer_id: str, limit: int = 20) -> List[DebtNegotiation]:
        """Most recent negotiations for an employer"""
        return (
            self.db.query(DebtNegotiation)
            .filter(DebtNegotiation.clinic_id == clinic_id, DebtNegotiation.employer_id == employer_id)
            .order_by(DebtNegotiation.created_at.desc())
            .limit(limit)
            .all()
        )

    def count_for_clinic(self, clinic_id: str) -> int:
        return self.db.query(DebtNegotiation).filter(DebtNegotiation.clinic_id == clinic_id).count()
