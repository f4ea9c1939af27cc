# This project was developed with assistance from AI tools.
"""
Bill intake -- domain models

An append-only log of step submissions plus one current-state row per case.
The ``cases`` row is a fold over the event stream, maintained incrementally
by the case progress store rather than recomputed on read.
"""

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import INET, JSONB
from sqlalchemy.orm import relationship

from .database import Base


class CaseProgressEvent(Base):
    """One step submission. INSERT + SELECT only -- no UPDATE or DELETE."""

    __tablename__ = "case_progress_events"
    __table_args__ = (
        UniqueConstraint("submission_id", name="uq_case_progress_events_submission_id"),
    )

    id = Column(BigInteger, primary_key=True, autoincrement=True)
    submission_id = Column(String(255), nullable=False)
    case_id = Column(String(255), nullable=False)
    step_key = Column(Text, nullable=False)
    step_version = Column(Integer, nullable=False, default=1, server_default=text("1"))
    payload = Column(JSONB, nullable=False)
    received_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    source = Column(Text, nullable=True)
    user_agent = Column(Text, nullable=True)
    ip = Column(INET, nullable=True)

    def __repr__(self):
        return (
            f"<CaseProgressEvent(id={self.id}, case_id='{self.case_id}', "
            f"step='{self.step_key}')>"
        )


class Case(Base):
    """Current state of one intake case.

    ``progress`` maps step key -> latest payload for that step and is the
    source of truth. The scalar columns below it are a queryable cache of a
    few fields from specific steps.
    """

    __tablename__ = "cases"

    case_id = Column(String(255), primary_key=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    current_step = Column(Text, nullable=True)
    progress = Column(JSONB, nullable=False, server_default=text("'{}'::jsonb"))

    # Denormalized from progress
    contact_email = Column(Text, nullable=True, index=True)
    contact_phone = Column(Text, nullable=True)
    hospital_name = Column(Text, nullable=True)
    balance_amount = Column(Numeric(14, 2), nullable=True)
    in_collections = Column(Boolean, nullable=True)

    events = relationship(
        "CaseProgressEvent",
        primaryjoin="Case.case_id == foreign(CaseProgressEvent.case_id)",
        order_by="CaseProgressEvent.id",
        viewonly=True,
    )

    def __repr__(self):
        return f"<Case(case_id='{self.case_id}', current_step='{self.current_step}')>"
