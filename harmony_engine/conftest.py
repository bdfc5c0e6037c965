# harmony_engine/conftest.py
from datetime import datetime, timezone

import pytest

from harmony_engine.features.progress.service import progress_service


@pytest.fixture
def now():
    """Fixed evaluation instant: 2024-03-10 12:00 UTC."""
    return datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def reset_progress_service():
    """Isolate the module-level service between tests."""
    progress_service.clear()
    yield
    progress_service.clear()
