# This project was developed with assistance from AI tools.
"""Hospital name search over the bundled directory."""

import json
import logging
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel

from ..core.config import settings

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 2
MAX_RESULTS = 7


class Hospital(BaseModel):
    id: str
    name: str
    city: str
    state: str


@lru_cache(maxsize=4)
def load_hospitals(path: Path | None = None) -> tuple[Hospital, ...]:
    """Load and cache the hospital directory."""
    source = path or settings.HOSPITALS_DATA_PATH
    with open(source, encoding="utf-8") as f:
        raw = json.load(f)
    hospitals = tuple(Hospital.model_validate(item) for item in raw)
    logger.info("Loaded %d hospitals from %s", len(hospitals), source)
    return hospitals


def search_hospitals(query: str, hospitals: tuple[Hospital, ...] | None = None) -> list[Hospital]:
    """Case-insensitive substring match on name, city or state.

    Queries shorter than two characters (after trimming) return nothing.
    """
    q = query.strip().lower()
    if len(q) < MIN_QUERY_LENGTH:
        return []
    if hospitals is None:
        hospitals = load_hospitals()
    matches = [
        h
        for h in hospitals
        if q in h.name.lower() or q in h.city.lower() or q in h.state.lower()
    ]
    return matches[:MAX_RESULTS]
