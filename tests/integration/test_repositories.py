"""Integration tests for repositories and session start-up"""

from dataclasses import replace
from decimal import Decimal

from negotiation_gateway.domain.models import NegotiationSettings
from negotiation_gateway.infrastructure.database.models import DebtNegotiation
from negotiation_gateway.infrastructure.database.repositories import ContributionRepository, SettingsRepository
from negotiation_gateway.services.wizard import NegotiationWizard
from conftest import CLINIC_ID, EMPLOYER_ID, FIXED_NOW


def test_list_eligible_filters_status_and_owner(db, seed_contributions):
    overdue, pending, _paid, _cancelled, oldest = seed_contributions(
        [
            (10_000, 90, "overdue"),
            (5_000, 10, "pending"),
            (7_000, 60, "paid"),
            (7_000, 60, "cancelled"),
            (8_000, 120, "overdue"),
        ]
    )
    seed_contributions([(9_000, 30, "overdue")], employer_id="employer-2")
    seed_contributions([(9_000, 30, "overdue")], clinic_id="clinic-2")

    items = ContributionRepository(db).list_eligible(CLINIC_ID, EMPLOYER_ID)

    # Oldest due date first
    assert [item.id for item in items] == [str(oldest.id), str(overdue.id), str(pending.id)]
    assert items[0].category_name == "Contribuição Sindical"
    assert items[1].value_cents == 10_000


def test_list_eligible_skips_contributions_in_a_negotiation(db, seed_contributions):
    free, taken = seed_contributions([(10_000, 60, "overdue"), (10_000, 30, "overdue")])

    negotiation = DebtNegotiation(
        clinic_id=CLINIC_ID,
        employer_id=EMPLOYER_ID,
        negotiation_code="NEG-OLD",
        total_original_value=10_000,
        total_interest=0,
        total_monetary_correction=0,
        total_late_fee=0,
        total_negotiated_value=10_000,
        installments_count=1,
        installment_value=10_000,
        first_due_date=taken.due_date,
        applied_interest_rate=Decimal("1"),
        applied_correction_rate=Decimal("0.5"),
        applied_late_fee_rate=Decimal("2"),
        created_by="user-0",
        expires_at=FIXED_NOW,
    )
    db.add(negotiation)
    db.flush()
    taken.negotiation_id = negotiation.id
    db.commit()

    items = ContributionRepository(db).list_eligible(CLINIC_ID, EMPLOYER_ID)

    assert [item.id for item in items] == [str(free.id)]


def test_settings_upsert_round_trip(db):
    repo = SettingsRepository(db)
    assert repo.get_for_clinic(CLINIC_ID) is None
    assert repo.get_or_default(CLINIC_ID) == NegotiationSettings.defaults()

    custom = replace(
        NegotiationSettings.defaults(),
        interest_rate_monthly=Decimal("2.5"),
        max_installments=6,
        legal_basis="Clause 7",
    )
    repo.upsert(CLINIC_ID, custom)
    db.commit()

    stored = repo.get_for_clinic(CLINIC_ID)
    assert stored.interest_rate_monthly == Decimal("2.5")
    assert stored.max_installments == 6
    assert stored.legal_basis == "Clause 7"

    repo.upsert(CLINIC_ID, replace(custom, max_installments=3))
    db.commit()
    assert repo.get_for_clinic(CLINIC_ID).max_installments == 3


def test_wizard_start_uses_clinic_settings(db):
    SettingsRepository(db).upsert(CLINIC_ID, replace(NegotiationSettings.defaults(), max_installments=4))
    db.commit()

    configured = NegotiationWizard.start(db, CLINIC_ID, "user-1", clock=lambda: FIXED_NOW)
    fallback = NegotiationWizard.start(db, "clinic-2", "user-1", clock=lambda: FIXED_NOW)

    assert configured.settings.max_installments == 4
    assert fallback.settings == NegotiationSettings.defaults()
    assert configured.today().isoformat() == "2025-03-10"
