"""SQLAlchemy ORM models for contributions, negotiation settings and negotiations"""

import uuid
from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()

RATE = Numeric(8, 4, asdecimal=True)


class NegotiationSettingsRecord(Base):
    """Negotiation rates and plan limits configured per clinic"""

    __tablename__ = "negotiation_settings"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    clinic_id = Column(Text, nullable=False, unique=True)
    interest_rate_monthly = Column(RATE, nullable=False)
    monetary_correction_monthly = Column(RATE, nullable=False)
    late_fee_percentage = Column(RATE, nullable=False)
    legal_basis = Column(Text, nullable=True)
    max_installments = Column(Integer, nullable=False)
    min_installment_value = Column(BigInteger, nullable=False)
    allow_partial_negotiation = Column(Boolean, nullable=False, default=True)
    require_down_payment = Column(Boolean, nullable=False, default=False)
    min_down_payment_percentage = Column(RATE, nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())


class ContributionType(Base):
    """Contribution category (e.g. monthly union due)"""

    __tablename__ = "contribution_types"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    clinic_id = Column(Text, nullable=False, index=True)
    name = Column(Text, nullable=False)


class EmployerContribution(Base):
    """Billing item owed by an employer; maintained by the billing module"""

    __tablename__ = "employer_contributions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    clinic_id = Column(Text, nullable=False, index=True)
    employer_id = Column(Text, nullable=False, index=True)
    contribution_type_id = Column(Uuid, ForeignKey("contribution_types.id"), nullable=False)
    competence_month = Column(Integer, nullable=False)
    competence_year = Column(Integer, nullable=False)
    value = Column(BigInteger, nullable=False)
    due_date = Column(Date, nullable=False)
    status = Column(Text, nullable=False, default="pending")
    negotiation_id = Column(Uuid, ForeignKey("debt_negotiations.id", ondelete="SET NULL"), nullable=True)

    contribution_type = relationship("ContributionType")


class DebtNegotiation(Base):
    """Negotiation header; code is unique within a clinic"""

    __tablename__ = "debt_negotiations"
    __table_args__ = (UniqueConstraint("clinic_id", "negotiation_code", name="uq_debt_negotiations_clinic_code"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    clinic_id = Column(Text, nullable=False, index=True)
    employer_id = Column(Text, nullable=False, index=True)
    negotiation_code = Column(Text, nullable=False)
    status = Column(Text, nullable=False, default="simulation")
    total_original_value = Column(BigInteger, nullable=False)
    total_interest = Column(BigInteger, nullable=False)
    total_monetary_correction = Column(BigInteger, nullable=False)
    total_late_fee = Column(BigInteger, nullable=False)
    total_negotiated_value = Column(BigInteger, nullable=False)
    down_payment_value = Column(BigInteger, nullable=False, default=0)
    installments_count = Column(Integer, nullable=False)
    installment_value = Column(BigInteger, nullable=False)
    first_due_date = Column(Date, nullable=False)
    applied_interest_rate = Column(RATE, nullable=False)
    applied_correction_rate = Column(RATE, nullable=False)
    applied_late_fee_rate = Column(RATE, nullable=False)
    legal_basis = Column(Text, nullable=True)
    created_by = Column(Text, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    items = relationship("NegotiationItemRecord", back_populates="negotiation", cascade="all, delete-orphan")
    installments = relationship(
        "NegotiationInstallmentRecord",
        back_populates="negotiation",
        cascade="all, delete-orphan",
        order_by="NegotiationInstallmentRecord.installment_number",
    )


class NegotiationItemRecord(Base):
    """Snapshot of one contribution as negotiated"""

    __tablename__ = "negotiation_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    negotiation_id = Column(Uuid, ForeignKey("debt_negotiations.id", ondelete="CASCADE"), nullable=False)
    contribution_id = Column(Uuid, ForeignKey("employer_contributions.id"), nullable=False)
    original_value = Column(BigInteger, nullable=False)
    due_date = Column(Date, nullable=False)
    competence_month = Column(Integer, nullable=False)
    competence_year = Column(Integer, nullable=False)
    contribution_type_name = Column(Text, nullable=False, default="")
    days_overdue = Column(Integer, nullable=False)
    interest_value = Column(BigInteger, nullable=False)
    correction_value = Column(BigInteger, nullable=False)
    late_fee_value = Column(BigInteger, nullable=False)
    total_value = Column(BigInteger, nullable=False)

    negotiation = relationship("DebtNegotiation", back_populates="items")


class NegotiationInstallmentRecord(Base):
    """Installment of a negotiation; number 0 is the down payment"""

    __tablename__ = "negotiation_installments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    negotiation_id = Column(Uuid, ForeignKey("debt_negotiations.id", ondelete="CASCADE"), nullable=False)
    installment_number = Column(Integer, nullable=False)
    value = Column(BigInteger, nullable=False)
    due_date = Column(Date, nullable=False)
    status = Column(Text, nullable=False, default="pending")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    negotiation = relationship("DebtNegotiation", back_populates="installments")
