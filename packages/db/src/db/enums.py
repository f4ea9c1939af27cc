# This project was developed with assistance from AI tools.
"""
Domain enums for the bill intake flow.

Shared domain types used by both SQLAlchemy models (db package)
and the API services (api package). Step keys are an open set: these are
only the steps the API knows how to validate and project.
"""

import enum


class KnownStep(str, enum.Enum):
    HOSPITAL = "hospital"
    BILL_TYPE = "billType"
    BALANCE = "balance"
    INSURANCE = "insurance"
    CONTACT = "contact"
    UPLOAD = "upload"

    @classmethod
    def new_case_step(cls) -> "KnownStep":
        """The step that first establishes a case's identity."""
        return cls.HOSPITAL

    @classmethod
    def lookup(cls, step_key: str) -> "KnownStep | None":
        """Return the matching known step, or None for unrecognized keys."""
        try:
            return cls(step_key)
        except ValueError:
            return None


class DoubleOptInStatus(str, enum.Enum):
    SENT = "sent"
    SKIPPED = "skipped"
    FAILED = "failed"


class AnalyticsEventType(str, enum.Enum):
    TRACK = "track"
    IDENTIFY = "identify"
    SET = "set"
