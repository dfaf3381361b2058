"""Durable write of a previewed negotiation"""

import time
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from negotiation_gateway.config import settings
from negotiation_gateway.domain.exceptions import (
    CodeAllocationError,
    CodeServiceError,
    NegotiationCodeConflict,
    PersistenceError,
)
from negotiation_gateway.domain.installments import build_schedule
from negotiation_gateway.domain.models import ScheduledInstallment
from negotiation_gateway.domain.workflow import PreviewStep
from negotiation_gateway.infrastructure.clients.codes import CodeClient
from negotiation_gateway.infrastructure.database.models import DebtNegotiation
from negotiation_gateway.infrastructure.database.repositories import NegotiationRepository
from negotiation_gateway.infrastructure.observability.logging import log_code_collision, log_commit
from negotiation_gateway.infrastructure.observability.metrics import (
    code_collision_counter,
    commit_duration_histogram,
    record_commit,
)
from negotiation_gateway.utils.retry import RetriesExhausted, retry


@dataclass
class CommitResult:
    """Identifiers of a stored negotiation"""

    negotiation_id: uuid.UUID
    negotiation_code: str
    attempts: int
    expires_at: datetime
    schedule: List[ScheduledInstallment]


async def commit_negotiation(
    db: Session,
    code_client: CodeClient,
    preview: PreviewStep,
    clinic_id: str,
    created_by: str,
    now: datetime,
    today: date,
    max_attempts: int | None = None,
    lead_days: int | None = None,
    request_id: str = "unknown",
) -> CommitResult:
    """
    Persist a negotiation header, its items and its installments.

    Flow:
    1. Ask the generator for a code
    2. Insert the header ('simulation'); on a code clash go back to 1,
       up to max_attempts
    3. Insert one item snapshot per calculated contribution
    4. Build the schedule as of the commit date and insert it
    5. Commit the transaction; any failure rolls everything back

    Raises:
        CodeAllocationError: Every attempt produced a code already in use
        CodeServiceError: Code generator failed
        PersistenceError: Any other database failure
    """
    max_attempts = max_attempts or settings.code_max_attempts
    lead_days = settings.down_payment_lead_days if lead_days is None else lead_days
    start_time = time.time()

    repo = NegotiationRepository(db)
    calculation = preview.calculation
    expires_at = now + timedelta(days=preview.plan.validity_days)

    async def insert_header(attempt: int) -> tuple[DebtNegotiation, int]:
        code = await code_client.generate_code(clinic_id)
        negotiation = repo.create_negotiation(
            clinic_id=clinic_id,
            employer_id=calculation.employer_id,
            code=code,
            totals=preview.totals,
            plan=preview.plan,
            breakdown=preview.breakdown,
            settings=preview.settings,
            created_by=created_by,
            expires_at=expires_at,
        )
        return negotiation, attempt

    def on_collision(attempt: int, error: BaseException) -> None:
        code_collision_counter.inc()
        log_code_collision(clinic_id, getattr(error, "code", ""), attempt)

    with commit_duration_histogram.time():
        try:
            negotiation, attempts = await retry(
                insert_header,
                max_attempts=max_attempts,
                is_retryable=lambda e: isinstance(e, NegotiationCodeConflict),
                on_retry=on_collision,
            )
        except RetriesExhausted as e:
            db.rollback()
            on_collision(e.attempts, e.last_error)
            record_commit("code_exhausted")
            raise CodeAllocationError(
                f"Could not allocate a unique negotiation code after {e.attempts} attempts"
            ) from e
        except CodeServiceError:
            db.rollback()
            record_commit("code_service_error")
            raise
        except SQLAlchemyError as e:
            db.rollback()
            record_commit("persistence_error")
            raise PersistenceError(f"Failed to insert negotiation header: {e}") from e

        try:
            repo.add_items(negotiation.id, calculation.calculated)
            schedule = build_schedule(preview.plan, preview.breakdown, today, lead_days)
            repo.add_installments(negotiation.id, schedule)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            record_commit("persistence_error")
            raise PersistenceError(f"Failed to store negotiation {negotiation.negotiation_code}: {e}") from e
        except Exception:
            db.rollback()
            record_commit("persistence_error")
            raise

    duration_ms = (time.time() - start_time) * 1000
    record_commit("created", preview.totals.negotiated_cents)
    log_commit(
        request_id,
        clinic_id,
        str(negotiation.id),
        negotiation.negotiation_code,
        attempts,
        preview.totals.negotiated_cents,
        duration_ms,
    )

    return CommitResult(
        negotiation_id=negotiation.id,
        negotiation_code=negotiation.negotiation_code,
        attempts=attempts,
        expires_at=expires_at,
        schedule=schedule,
    )
