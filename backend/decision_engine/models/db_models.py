"""
Humane Decision Engine - SQLAlchemy ORM Models
Persistent storage for decisions, explainable receipts, and the audit log
"""
from datetime import datetime
from sqlalchemy import Column, String, Float, DateTime, Text, JSON, ForeignKey, Boolean, Enum as SQLEnum
from sqlalchemy.orm import relationship

from ..database import Base
from .ssot import DecisionOutcome


class DecisionDB(Base):
    """One generated decision letter. Written only after every safety check passed."""
    __tablename__ = "decisions"

    id = Column(String(36), primary_key=True)  # UUID
    job_id = Column(String(36), nullable=False, index=True)
    candidate_id = Column(String(36), nullable=False, index=True)
    author_id = Column(String(36), nullable=True)
    company_id = Column(String(36), nullable=True, index=True)
    outcome = Column(SQLEnum(DecisionOutcome), nullable=False)

    reasons = Column(JSON, nullable=False, default=list)
    generated_letter = Column(Text, nullable=False)
    bias_check_passed = Column(Boolean, nullable=False)
    bias_score = Column(Float, nullable=True)

    letter_template = Column(String(100), nullable=True)
    template_version = Column(String(50), nullable=False)
    idempotency_key = Column(String(200), nullable=True, index=True)

    # Card is patched in after this row exists (two-phase write)
    explainable = Column(JSON, nullable=True)

    llm_provider = Column(String(50), nullable=True)
    llm_model = Column(String(100), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    receipts = relationship("ExplainableReceiptDB", back_populates="decision")


class ExplainableReceiptDB(Base):
    """Hash + signature binding a card to its decision content."""
    __tablename__ = "explainable_receipts"

    id = Column(String(36), primary_key=True)
    decision_id = Column(String(36), ForeignKey("decisions.id"), nullable=False, index=True)
    hash = Column(String(64), nullable=False, index=True)
    signature = Column(String(64), nullable=False)
    explainable = Column(JSON, nullable=False)
    version = Column(String(20), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    decision = relationship("DecisionDB", back_populates="receipts")


class AuditLogDB(Base):
    """Append-only audit trail for compliance tooling."""
    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True)
    actor = Column(String(100), nullable=False)
    action = Column(String(100), nullable=False, index=True)
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(String(200), nullable=True, index=True)
    metadata_json = Column("metadata", JSON, nullable=True)
    occurred_at = Column(DateTime, default=datetime.utcnow, index=True)
