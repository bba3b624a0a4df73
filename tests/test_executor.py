# tests/test_executor.py
import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from fakes import FakeDisk, FakeNarrator, FakeNetwork, FakeOS, FakeService, FakeStartup, make_inspectors

from sysvital.core.executor import PlanExecutor
from sysvital.core.models import (
    DomainAnalysis, ExecutionState, OptimizationPlan, OptimizationStep, StepType,
    SystemAnalysisReport,
)
from sysvital.core.schemas import ConnectionSnapshot, OSTweak, ServiceOptimization, StartupProgram


def _report(score: int) -> SystemAnalysisReport:
    return SystemAnalysisReport(
        overall_health_score=score,
        hardware=DomainAnalysis(), software=DomainAnalysis(),
        performance=DomainAnalysis(), security=DomainAnalysis(),
    )


def _analyzer(*scores: int) -> AsyncMock:
    return AsyncMock(side_effect=[_report(s) for s in scores])


def _plan(*steps: OptimizationStep) -> OptimizationPlan:
    return OptimizationPlan(steps=list(steps))


CLEAN = OptimizationStep(title="Clean Disk", type=StepType.CLEAN_DISK)


def test_every_step_type_has_a_handler():
    executor = PlanExecutor(make_inspectors(), _analyzer())
    assert set(executor.STEP_HANDLERS) == set(StepType)


@pytest.mark.asyncio
async def test_empty_plan_is_a_successful_noop():
    analyze = _analyzer(75)
    executor = PlanExecutor(make_inspectors(), analyze)

    result = await executor.execute(_plan())

    assert result.success is True
    assert result.actual_health_score_increase == 0
    assert result.steps_completed == 0 and result.steps_failed == 0
    assert result.duration >= timedelta(0)
    assert analyze.await_count == 1
    assert executor.state == ExecutionState.COMPLETED


@pytest.mark.asyncio
async def test_failed_middle_step_does_not_stop_the_run():
    os_inspector = FakeOS(tweaks=[OSTweak(id="t1", name="Tweak")])
    disk = FakeDisk(cleanable=10)
    executor = PlanExecutor(make_inspectors(os=os_inspector, disk=disk), _analyzer(60, 66))

    result = await executor.execute(_plan(
        CLEAN,
        OptimizationStep(title="Optimize Service: Gone", type=StepType.DISABLE_SERVICE,
                         parameters={"service_name": "Gone"}),
        OptimizationStep(title="Tweak", type=StepType.APPLY_OS_TWEAK, parameters={"tweak_id": "t1"}),
    ))

    assert result.steps_completed == 2
    assert result.steps_failed == 1
    assert result.success is False
    assert disk.cleanups == 1
    assert os_inspector.applied == ["t1"]
    assert result.errors == ("Error executing Optimize Service: Gone: service 'Gone' no longer exists",)
    assert result.actual_health_score_increase == 6
    assert executor.state == ExecutionState.COMPLETED_WITH_ERRORS


@pytest.mark.asyncio
async def test_negative_delta_is_reported():
    executor = PlanExecutor(make_inspectors(), _analyzer(80, 70))
    result = await executor.execute(_plan(CLEAN))

    assert result.success is True
    assert result.actual_health_score_increase == -10


@pytest.mark.asyncio
async def test_handler_returning_false_is_a_failure():
    executor = PlanExecutor(make_inspectors(disk=FakeDisk(cleanup_ok=False)), _analyzer(50, 50))
    result = await executor.execute(_plan(CLEAN))

    assert result.steps_failed == 1
    assert result.errors == ("Failed to execute: Clean Disk",)


@pytest.mark.asyncio
async def test_missing_parameter_fails_the_step():
    executor = PlanExecutor(make_inspectors(), _analyzer(50, 50))
    result = await executor.execute(_plan(
        OptimizationStep(title="Disable Startup: X", type=StepType.DISABLE_STARTUP_ITEM),
    ))

    assert result.steps_failed == 1
    assert "missing parameter 'program_id'" in result.errors[0]


@pytest.mark.asyncio
async def test_update_driver_always_fails():
    executor = PlanExecutor(make_inspectors(), _analyzer(50, 50))
    result = await executor.execute(_plan(OptimizationStep(title="Update GPU driver", type=StepType.UPDATE_DRIVER)))

    assert result.success is False
    assert result.errors[0].startswith("Error executing Update GPU driver:")


@pytest.mark.asyncio
async def test_steps_dispatch_to_inspectors():
    program = StartupProgram(id="HKCU\\Run\\Spotify", name="Spotify")
    startup = FakeStartup(programs=[program])
    service = FakeService(services=[ServiceOptimization(service_name="Fax")])
    conn = ConnectionSnapshot(process_name="bad.exe", pid=666, remote_ip="203.0.113.9", remote_port=4444)
    network = FakeNetwork(connections=[conn])
    inspectors = make_inspectors(startup=startup, service=service, network=network)
    executor = PlanExecutor(inspectors, _analyzer(40, 55))

    result = await executor.execute(_plan(
        OptimizationStep(title="Disable Startup: Spotify", type=StepType.DISABLE_STARTUP_ITEM,
                         parameters={"program_id": program.id}),
        OptimizationStep(title="Optimize Service: Fax", type=StepType.DISABLE_SERVICE,
                         parameters={"service_name": "Fax"}),
        OptimizationStep(title="Terminate 666", type=StepType.TERMINATE_PROCESS, parameters={"pid": "666"}),
        OptimizationStep(title="Block C2", type=StepType.BLOCK_CONNECTION,
                         parameters={"remote_ip": "203.0.113.9", "remote_port": 4444}),
        OptimizationStep(title="Fix Registry Issues", type=StepType.FIX_REGISTRY),
    ))

    assert result.success is True
    assert result.steps_completed == 5
    assert startup.toggled == {program.id: False}
    assert service.applied == ["Fax"]
    assert inspectors.process.terminated == [666]
    assert network.blocked == [conn]


@pytest.mark.asyncio
async def test_cancellation_between_steps():
    cancel = asyncio.Event()

    class CancellingDisk(FakeDisk):
        async def run_disk_cleanup(self):
            cancel.set()
            return await super().run_disk_cleanup()

    analyze = _analyzer(70, 76)
    executor = PlanExecutor(make_inspectors(disk=CancellingDisk()), analyze)

    result = await executor.execute(_plan(CLEAN, CLEAN, CLEAN), cancel=cancel)

    assert result.cancelled is True
    assert result.success is False
    assert result.steps_completed == 1
    assert result.actual_health_score_increase == 6
    assert analyze.await_count == 2


@pytest.mark.asyncio
async def test_cancelled_before_first_step_skips_second_analysis():
    cancel = asyncio.Event()
    cancel.set()
    analyze = _analyzer(70)

    result = await PlanExecutor(make_inspectors(), analyze).execute(_plan(CLEAN), cancel=cancel)

    assert result.cancelled is True
    assert result.steps_completed == 0
    assert result.actual_health_score_increase == 0
    assert analyze.await_count == 1


@pytest.mark.asyncio
async def test_outcomes_are_logged_and_narrated():
    db = MagicMock()
    narrator = FakeNarrator(reply="Boot time improved.")
    executor = PlanExecutor(make_inspectors(disk=FakeDisk(cleanup_ok=False)), _analyzer(50, 52),
                            narrator=narrator, db=db)

    result = await executor.execute(_plan(CLEAN, OptimizationStep(title="Tweak", type=StepType.APPLY_OS_TWEAK,
                                                                  parameters={"tweak_id": "none"})))

    assert db.log_event.call_count == 2
    assert db.log_event.call_args_list[0].args == ("OPTIMIZATION", "Failed to execute: Clean Disk", "WARNING")
    assert result.post_narrative == "Boot time improved."
    assert "Before: 50/100" in narrator.prompts[0]
