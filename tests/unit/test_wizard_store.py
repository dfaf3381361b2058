"""Unit tests for the wizard session registry"""

import pytest
from datetime import timedelta
from negotiation_gateway.domain.exceptions import SessionNotFoundError
from negotiation_gateway.domain.models import NegotiationSettings
from negotiation_gateway.services.wizard import NegotiationWizard, WizardStore
from conftest import CLINIC_ID, FIXED_NOW


class Clock:
    def __init__(self):
        self.now = FIXED_NOW

    def __call__(self):
        return self.now

    def advance(self, minutes: int):
        self.now += timedelta(minutes=minutes)


def _wizard() -> NegotiationWizard:
    return NegotiationWizard(CLINIC_ID, "user-1", NegotiationSettings.defaults(), clock=lambda: FIXED_NOW)


def test_store_returns_added_session():
    store = WizardStore(ttl_minutes=60, clock=Clock())
    wizard = store.add(_wizard())

    assert store.get(wizard.id) is wizard
    assert len(store) == 1


def test_store_discard():
    store = WizardStore(ttl_minutes=60, clock=Clock())
    wizard = store.add(_wizard())

    store.discard(wizard.id)
    store.discard(wizard.id)

    assert len(store) == 0
    with pytest.raises(SessionNotFoundError):
        store.get(wizard.id)


def test_store_expires_idle_sessions():
    clock = Clock()
    store = WizardStore(ttl_minutes=60, clock=clock)
    active = store.add(_wizard())
    idle = store.add(_wizard())

    clock.advance(45)
    store.get(active.id)
    clock.advance(30)

    # Idle for 75 minutes; the active one was touched 30 minutes ago
    with pytest.raises(SessionNotFoundError):
        store.get(idle.id)
    assert store.get(active.id) is active
    assert len(store) == 1


def test_store_expiry_also_runs_on_add():
    clock = Clock()
    store = WizardStore(ttl_minutes=10, clock=clock)
    store.add(_wizard())

    clock.advance(11)
    store.add(_wizard())

    assert len(store) == 1


def test_store_keeps_session_while_committing():
    clock = Clock()
    store = WizardStore(ttl_minutes=10, clock=clock)
    wizard = store.add(_wizard())
    wizard._committing = True

    clock.advance(30)

    assert store.get(wizard.id) is wizard
