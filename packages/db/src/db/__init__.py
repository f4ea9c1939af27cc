# This project was developed with assistance from AI tools.
__version__ = "0.1.0"

from .database import Base, SessionLocal, dispose_engine, engine, get_db
from .enums import AnalyticsEventType, DoubleOptInStatus, KnownStep
from .models import Case, CaseProgressEvent

__all__ = [
    "Base",
    "SessionLocal",
    "dispose_engine",
    "engine",
    "get_db",
    "__version__",
    # Enums
    "AnalyticsEventType",
    "DoubleOptInStatus",
    "KnownStep",
    # Models
    "Case",
    "CaseProgressEvent",
]
