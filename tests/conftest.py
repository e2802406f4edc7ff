"""Shared fixtures."""

from __future__ import annotations

import pytest
from loguru import logger


@pytest.fixture
def log_records():
    """Capture loguru records emitted during the test."""
    records: list[dict] = []
    handler_id = logger.add(lambda m: records.append(m.record), level="DEBUG")
    yield records
    logger.remove(handler_id)
