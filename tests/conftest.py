"""
Shared fixtures for self-healing engine tests.
"""
import os
import sys
import pytest
from unittest.mock import AsyncMock, patch

# Add project root to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from healing.engine import SelfHealingEngine
from healing.types import FailureReport


@pytest.fixture
def engine():
    """Fresh engine with reference defaults per test."""
    return SelfHealingEngine()


@pytest.fixture
def no_sleep():
    """Patch asyncio.sleep so recovery delays return immediately; yields the mock."""
    with patch("asyncio.sleep", new_callable=AsyncMock) as sleep:
        yield sleep


def make_report(category="network", message="Connection refused",
                task_id=None, resource_id=None, **kwargs):
    """Factory for failure reports."""
    return FailureReport(
        category=category, message=message,
        task_id=task_id, resource_id=resource_id, **kwargs,
    )
