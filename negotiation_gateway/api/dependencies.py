"""Dependency injection for FastAPI endpoints"""

from fastapi import HTTPException, Request
from negotiation_gateway.domain.exceptions import SessionNotFoundError
from negotiation_gateway.infrastructure.clients.codes import CodeClient
from negotiation_gateway.services.wizard import NegotiationWizard, WizardStore, wizard_store


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_code_client() -> CodeClient:
    """Provide negotiation code generator client instance"""
    return CodeClient()


def get_wizard_store() -> WizardStore:
    """Provide the process-wide wizard session registry"""
    return wizard_store


def lookup_wizard(store: WizardStore, session_id: str) -> NegotiationWizard:
    try:
        return store.get(session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Wizard session not found")
