# This project was developed with assistance from AI tools.
"""Fixtures for functional tests.

The real app from ``src.main`` drives a whole widget journey. Persistence
is the in-memory store from ``mock_db``; the sheet is the shared FakeSheet.
"""

from unittest.mock import patch

import pytest

from tests.functional.mock_db import InMemoryProgressStore


@pytest.fixture
def store():
    """In-memory progress store patched into the case progress service."""
    memory = InMemoryProgressStore()
    with patch("src.services.case_progress.apply_step_submission", side_effect=memory.apply):
        yield memory
