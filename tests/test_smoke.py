"""
SysVital Smoke Tests
Basic import and schema validation tests for core functionality.
"""
import pytest
from pydantic import ValidationError

from sysvital.core.models import OptimizationResult, SystemAnalysisReport, DomainAnalysis
from sysvital.core.schemas import ProcessSnapshot


def test_imports() -> None:
    """Verify the entry points import without errors."""
    from sysvital.agent.engine import SystemAnalyzer
    from sysvital.cli import main
    from sysvital.modules import build_default_inspectors

    assert callable(main) and callable(build_default_inspectors) and SystemAnalyzer


def test_schema_validation() -> None:
    """Verify Pydantic schemas validate data correctly."""
    proc = ProcessSnapshot(pid=1234, name="test.exe", cpu_percent=5.5)
    assert proc.pid == 1234
    assert proc.is_signed is None

    with pytest.raises(ValidationError):
        ProcessSnapshot(pid="not-a-pid")


def test_snapshots_are_immutable() -> None:
    proc = ProcessSnapshot(pid=1)
    with pytest.raises(ValidationError):
        proc.pid = 2


def test_failed_steps_force_unsuccessful_result() -> None:
    assert OptimizationResult(success=True, steps_failed=1).success is False
    assert OptimizationResult(success=True, cancelled=True).success is False
    assert OptimizationResult(success=True).success is True


def test_report_scores_are_clamped() -> None:
    report = SystemAnalysisReport(
        overall_health_score=250,
        hardware=DomainAnalysis(), software=DomainAnalysis(),
        performance=DomainAnalysis(), security=DomainAnalysis(),
    )
    assert report.overall_health_score == 100
