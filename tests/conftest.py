"""
Pytest configuration and shared fixtures for logmask tests.

Audit events are captured in plain lists, and time-dependent behavior is
driven through FakeClock instead of sleeping.
"""

import os
import sys

import pytest

# Add parent directory to path for package imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from logmask.audit import array_audit_logger  # noqa: E402
from logmask.records import Level, Record  # noqa: E402


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    """Provide a FakeClock starting at t=1000."""
    return FakeClock()


@pytest.fixture
def audit_events():
    """List that collects AuditEvents."""
    return []


@pytest.fixture
def audit_logger(audit_events):
    """Audit logger appending to audit_events."""
    return array_audit_logger(audit_events)


@pytest.fixture
def make_record():
    """Factory for records with sensible defaults."""

    def factory(message="test message", context=None, level=Level.INFO, channel="app"):
        return Record(message=message, context=context or {}, level=level, channel=channel)

    return factory
