"""Wizard sessions: one user's path from employer selection to a stored negotiation"""

import logging
import threading
import uuid
from datetime import date, datetime, timedelta
from typing import Callable, Dict, Iterable, Mapping, Optional, Tuple, Type, TypeVar

from sqlalchemy.orm import Session

from negotiation_gateway.config import settings
from negotiation_gateway.domain import workflow
from negotiation_gateway.domain.exceptions import (
    CommitInProgressError,
    InvalidStepError,
    SessionNotFoundError,
)
from negotiation_gateway.domain.models import InstallmentPlan, NegotiationSettings
from negotiation_gateway.domain.workflow import (
    CalculationStep,
    DebtorStep,
    ItemsStep,
    PlanStep,
    PreviewStep,
    Rejection,
    ValidationIssue,
    WizardStep,
)
from negotiation_gateway.infrastructure.clients.codes import CodeClient
from negotiation_gateway.infrastructure.database.repositories import ContributionRepository, SettingsRepository
from negotiation_gateway.services.commit import CommitResult, commit_negotiation
from negotiation_gateway.utils.date_utils import local_date, utcnow

S = TypeVar("S")

logger = logging.getLogger(__name__)


class NegotiationWizard:
    """
    Holds the current step of one negotiation session.

    Settings are read once when the session starts. Step methods return
    None on success or the Rejection explaining why the step did not move.
    """

    def __init__(
        self,
        clinic_id: str,
        user_id: str,
        negotiation_settings: NegotiationSettings,
        clock: Callable[[], datetime] | None = None,
        tz_name: str | None = None,
        validity_days: int | None = None,
        lead_days: int | None = None,
    ):
        self.id = str(uuid.uuid4())
        self.clinic_id = clinic_id
        self.user_id = user_id
        self.clock = clock or utcnow
        self.tz_name = tz_name or settings.business_timezone
        self.validity_days = validity_days or settings.negotiation_validity_days
        self.lead_days = settings.down_payment_lead_days if lead_days is None else lead_days
        self.step: WizardStep = DebtorStep(settings=negotiation_settings)
        self.result: Optional[CommitResult] = None
        self._committing = False

    @classmethod
    def start(cls, db: Session, clinic_id: str, user_id: str, **kwargs) -> "NegotiationWizard":
        """New session with the clinic's settings, or the defaults"""
        negotiation_settings = SettingsRepository(db).get_or_default(clinic_id)
        return cls(clinic_id, user_id, negotiation_settings, **kwargs)

    @property
    def settings(self) -> NegotiationSettings:
        return self.step.settings

    @property
    def committing(self) -> bool:
        return self._committing

    def today(self) -> date:
        return local_date(self.clock(), self.tz_name)

    def _expect(self, step_type: Type[S]) -> S:
        if not isinstance(self.step, step_type):
            raise InvalidStepError(f"Not available at step '{self.step.name}'")
        if self.result is not None:
            raise InvalidStepError("Negotiation already saved")
        return self.step

    def _apply(self, outcome) -> Optional[Rejection]:
        if isinstance(outcome, Rejection):
            return outcome
        self.step = outcome
        return None

    def choose_debtor(self, db: Session, employer_id: str) -> Optional[Rejection]:
        """Fetch the employer's eligible contributions and move to selection"""
        step = self._expect(DebtorStep)
        items = ContributionRepository(db).list_eligible(self.clinic_id, employer_id) if employer_id else []
        return self._apply(workflow.choose_debtor(step, employer_id, items))

    def select_items(self, item_ids: Iterable[str]) -> Optional[Rejection]:
        return self._apply(workflow.select_items(self._expect(ItemsStep), item_ids))

    def select_all_items(self) -> None:
        self.step = workflow.select_all(self._expect(ItemsStep))

    def calculate(self) -> Optional[Rejection]:
        """Compute surcharges as of today; the date stays fixed for this session"""
        return self._apply(workflow.calculate(self._expect(ItemsStep), self.today()))

    def start_plan(self, first_due_date: date | None = None) -> Optional[Rejection]:
        step = self._expect(CalculationStep)
        return self._apply(workflow.start_plan(step, first_due_date or self.today(), self.validity_days))

    def update_plan(
        self,
        installments_count: int,
        down_payment_cents: int,
        first_due_date: date,
        custom_dates: Mapping[int, date] | None = None,
        validity_days: int | None = None,
    ) -> Tuple[ValidationIssue, ...]:
        """Replace plan input and return whatever still blocks the preview"""
        step = self._expect(PlanStep)
        plan = InstallmentPlan(
            installments_count=installments_count,
            down_payment_cents=down_payment_cents,
            first_due_date=first_due_date,
            custom_dates=dict(custom_dates or {}),
            validity_days=validity_days or step.plan.validity_days,
        )
        self.step = workflow.update_plan(step, plan)
        return self.step.issues

    def preview(self) -> Optional[Rejection]:
        return self._apply(workflow.preview(self._expect(PlanStep), self.today(), self.lead_days))

    def back(self) -> None:
        if self._committing:
            raise CommitInProgressError("Cannot navigate while the negotiation is being saved")
        if self.result is not None:
            raise InvalidStepError("Negotiation already saved")
        self.step = workflow.back(self.step)

    async def commit(self, db: Session, code_client: CodeClient, request_id: str = "unknown") -> CommitResult:
        """
        Store the previewed negotiation.

        Only one commit may run per session; a failed commit leaves the
        preview in place so the user can try again.
        """
        step = self._expect(PreviewStep)
        if self._committing:
            raise CommitInProgressError("Negotiation is already being saved")

        self._committing = True
        try:
            now = self.clock()
            self.result = await commit_negotiation(
                db,
                code_client,
                step,
                clinic_id=self.clinic_id,
                created_by=self.user_id,
                now=now,
                today=local_date(now, self.tz_name),
                lead_days=self.lead_days,
                request_id=request_id,
            )
            return self.result
        finally:
            self._committing = False


class WizardStore:
    """
    In-process registry of open wizard sessions.

    Every lookup refreshes the session; sessions idle for longer than the
    TTL are dropped, except while a commit is running.
    """

    def __init__(self, ttl_minutes: int | None = None, clock: Callable[[], datetime] | None = None):
        self.ttl = timedelta(minutes=ttl_minutes or settings.wizard_session_ttl_minutes)
        self.clock = clock or utcnow
        self._sessions: Dict[str, Tuple[NegotiationWizard, datetime]] = {}  # id -> (wizard, last touched)
        self._lock = threading.Lock()

    def _purge(self, now: datetime) -> None:
        expired = [
            session_id
            for session_id, (wizard, touched) in self._sessions.items()
            if now - touched > self.ttl and not wizard.committing
        ]
        for session_id in expired:
            del self._sessions[session_id]
        if expired:
            logger.info("Expired idle wizard sessions", extra={"step": "session_expiry", "expired": len(expired)})

    def add(self, wizard: NegotiationWizard) -> NegotiationWizard:
        now = self.clock()
        with self._lock:
            self._purge(now)
            self._sessions[wizard.id] = (wizard, now)
        return wizard

    def get(self, session_id: str) -> NegotiationWizard:
        now = self.clock()
        with self._lock:
            self._purge(now)
            entry = self._sessions.get(session_id)
            if entry is not None:
                self._sessions[session_id] = (entry[0], now)
        if entry is None:
            raise SessionNotFoundError(f"Wizard session {session_id} not found")
        return entry[0]

    def discard(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def __len__(self) -> int:
        return len(self._sessions)


wizard_store = WizardStore()
