"""Tests for Pydantic models."""

import pytest
from pydantic import ValidationError
from ponitor.models import (
    PortDescriptor,
    PortStatus,
    PortReport,
    KillResult,
    UNKNOWN_PROCESS
)


def test_descriptor_creation():
    """Test PortDescriptor model creation."""
    descriptor = PortDescriptor(port=5432, name="PostgreSQL", category="database", description="PostgreSQL database")

    assert descriptor.port == 5432
    assert descriptor.category == "database"


def test_descriptor_rejects_out_of_range_port():
    """Ports outside 1-65535 are invalid."""
    with pytest.raises(ValidationError):
        PortDescriptor(port=0, name="Zero", category="system", description="")
    with pytest.raises(ValidationError):
        PortDescriptor(port=70000, name="Big", category="system", description="")


def test_descriptor_rejects_unknown_category():
    with pytest.raises(ValidationError):
        PortDescriptor(port=1234, name="Game", category="games", description="")


def test_descriptor_is_immutable():
    """Catalog entries cannot be mutated."""
    descriptor = PortDescriptor(port=80, name="HTTP", category="web", description="Web server")

    with pytest.raises(ValidationError):
        descriptor.port = 81


def test_free_status_has_no_owner():
    status = PortStatus.free()

    assert status.occupied is False
    assert status.pid is None
    assert status.process is None
    assert status.state == "free"


def test_held_by_falls_back_to_unknown_name():
    """An occupied port keeps its pid even when the name is unresolved."""
    status = PortStatus.held_by(4242)

    assert status.occupied is True
    assert status.pid == 4242
    assert status.process == UNKNOWN_PROCESS
    assert status.state == "occupied"


def test_unknown_status():
    status = PortStatus.unknown("'lsof' is not available on this system")

    assert status.occupied is False
    assert status.pid is None
    assert status.process is None
    assert status.state == "unknown"
    assert "lsof" in status.detail


def test_status_invariants_enforced():
    """Inconsistent occupancy combinations are rejected."""
    with pytest.raises(ValidationError):
        PortStatus(occupied=True, pid=None, state="occupied")
    with pytest.raises(ValidationError):
        PortStatus(occupied=False, pid=12)
    with pytest.raises(ValidationError):
        PortStatus(occupied=False, process="nginx")
    with pytest.raises(ValidationError):
        PortStatus(occupied=False, state="occupied")


def test_report_merges_descriptor_and_status():
    """Test PortReport merging."""
    descriptor = PortDescriptor(port=6379, name="Redis", category="database", description="Redis cache")
    report = PortReport.merge(descriptor, PortStatus.held_by(99, "redis-server"))

    assert report.port == 6379
    assert report.name == "Redis"
    assert report.occupied is True
    assert report.pid == 99
    assert report.process == "redis-server"


def test_kill_result_creation():
    result = KillResult(success=False, message="No process found listening on port 3000", reason="not_found")

    assert result.success is False
    assert result.pid is None
    assert result.reason == "not_found"
