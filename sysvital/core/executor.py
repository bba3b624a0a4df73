"""
Plan Executor - Sequential, Continue-on-Error Remediation

Runs the steps of an OptimizationPlan strictly in plan order, dispatching each
one to the inspector operation matching its StepType. A failing step is
recorded and the run continues; there is no aborted state.

State machine per run: IDLE -> RUNNING -> COMPLETED | COMPLETED_WITH_ERRORS.
"""
import asyncio
import time
from datetime import timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from sysvital.core.database import DatabaseManager
from sysvital.core.interfaces import Inspectors, Narrator
from sysvital.core.models import (
    ExecutionState, OptimizationPlan, OptimizationResult, OptimizationStep,
    StepType, SystemAnalysisReport,
)
from sysvital.utils.logger import Logger


class StepError(Exception):
    """A step could not run: missing parameter or vanished target entity."""


StepHandler = Callable[[OptimizationStep], Awaitable[bool]]


class PlanExecutor:
    """Executes optimization plans against the injected inspectors.

    Args:
        inspectors: The eight domain inspectors.
        analyze: Coroutine function returning a fresh SystemAnalysisReport,
            used for the before/after health scores.
        narrator: Optional narrator for the post-run analysis text.
        db: Optional event log receiving one entry per step outcome.
    """

    def __init__(self, inspectors: Inspectors,
                 analyze: Callable[[], Awaitable[SystemAnalysisReport]],
                 narrator: Optional[Narrator] = None,
                 db: Optional[DatabaseManager] = None) -> None:
        self.inspectors = inspectors
        self._analyze = analyze
        self.narrator = narrator
        self.db = db
        self.logger = Logger()
        self.state = ExecutionState.IDLE

        self.STEP_HANDLERS: Dict[StepType, StepHandler] = {
            StepType.CLEAN_DISK: self._step_clean_disk,
            StepType.FIX_REGISTRY: self._step_fix_registry,
            StepType.DISABLE_STARTUP_ITEM: self._step_disable_startup,
            StepType.DISABLE_SERVICE: self._step_disable_service,
            StepType.APPLY_OS_TWEAK: self._step_apply_tweak,
            StepType.TERMINATE_PROCESS: self._step_terminate_process,
            StepType.BLOCK_CONNECTION: self._step_block_connection,
            StepType.UPDATE_DRIVER: self._step_update_driver,
        }
        missing = set(StepType) - set(self.STEP_HANDLERS)
        if missing:
            raise RuntimeError(f"No handler for step types: {sorted(m.value for m in missing)}")

    async def execute(self, plan: OptimizationPlan,
                      cancel: Optional[asyncio.Event] = None) -> OptimizationResult:
        """Runs every step in order and reports the measured health delta.

        Cancellation is honoured between steps, never mid-step. A cancelled
        run returns what was accumulated so far, marked unsuccessful.
        """
        self.state = ExecutionState.RUNNING
        started = time.perf_counter()
        self.logger.info(f"Executing optimization plan {plan.id} ({len(plan.steps)} steps)")

        before = (await self._analyze()).overall_health_score

        completed = 0
        failed = 0
        errors: List[str] = []
        cancelled = False

        for index, step in enumerate(plan.steps, start=1):
            if cancel is not None and cancel.is_set():
                cancelled = True
                self.logger.warning(f"Plan {plan.id} cancelled before step {index}/{len(plan.steps)}")
                break

            ok, error = await self._run_step(step)
            if ok:
                completed += 1
                self._record(f"Step completed: {step.title}", "INFO")
            else:
                failed += 1
                errors.append(error)
                self._record(error, "WARNING")

        if completed + failed == 0:
            after = before
        else:
            after = (await self._analyze()).overall_health_score

        self.state = ExecutionState.COMPLETED_WITH_ERRORS if failed or cancelled else ExecutionState.COMPLETED
        increase = after - before
        duration = timedelta(seconds=time.perf_counter() - started)

        result = OptimizationResult(
            success=failed == 0 and not cancelled,
            steps_completed=completed,
            steps_failed=failed,
            errors=errors,
            actual_health_score_increase=increase,
            duration=duration,
            state=self.state,
            cancelled=cancelled,
        )

        narrative = await self._post_narrative(result, before, after)
        if narrative:
            result = result.model_copy(update={"post_narrative": narrative})

        if result.success:
            self.logger.success(f"Plan {plan.id} completed: {completed} steps, health {before} -> {after}")
        else:
            self.logger.warning(f"Plan {plan.id} finished with {failed} failed step(s), health {before} -> {after}")
        return result

    async def _run_step(self, step: OptimizationStep) -> Tuple[bool, str]:
        handler = self.STEP_HANDLERS[step.type]
        try:
            if await handler(step):
                return True, ""
            return False, f"Failed to execute: {step.title}"
        except Exception as e:
            self.logger.error(f"Step '{step.title}' raised: {e}")
            return False, f"Error executing {step.title}: {e}"

    def _record(self, message: str, severity: str) -> None:
        if self.db is not None:
            self.db.log_event("OPTIMIZATION", message, severity)

    async def _post_narrative(self, result: OptimizationResult, before: int, after: int) -> Optional[str]:
        if self.narrator is None or not self.narrator.is_configured:
            return None
        prompt = (
            "Analyze the optimization results:\n\n"
            f"Before: {before}/100\n"
            f"After: {after}/100\n"
            f"Actual Improvement: {result.actual_health_score_increase:+d}\n"
            f"Steps Completed: {result.steps_completed}\n"
            f"Steps Failed: {result.steps_failed}\n"
            f"Duration: {result.duration.total_seconds():.1f}s\n\n"
            "Provide a brief analysis (2-3 sentences)."
        )
        try:
            return await self.narrator.complete(prompt, {"max_tokens": 150, "temperature": 0.6}) or None
        except Exception as e:
            self.logger.warning(f"Post-optimization narrative failed: {e}")
            return None

    # --- HANDLERS ---
    @staticmethod
    def _require(step: OptimizationStep, key: str) -> Any:
        if key not in step.parameters or step.parameters[key] in (None, ""):
            raise StepError(f"missing parameter '{key}'")
        return step.parameters[key]

    async def _step_clean_disk(self, step: OptimizationStep) -> bool:
        result = await self.inspectors.disk.run_disk_cleanup()
        if result.success:
            self.logger.info(f"Disk cleanup freed {result.bytes_cleaned} bytes")
        return result.success

    async def _step_fix_registry(self, step: OptimizationStep) -> bool:
        scan = await self.inspectors.registry.scan_registry()
        if not scan.issues:
            return True
        outcome = await self.inspectors.registry.fix_registry_issues(list(scan.issues))
        return outcome.success

    async def _step_disable_startup(self, step: OptimizationStep) -> bool:
        program_id = str(self._require(step, "program_id"))
        programs = await self.inspectors.startup.list_startup_programs()
        program = next((p for p in programs if p.id == program_id), None)
        if program is None:
            raise StepError(f"startup program '{program_id}' no longer exists")
        return await self.inspectors.startup.set_startup_enabled(program, False)

    async def _step_disable_service(self, step: OptimizationStep) -> bool:
        name = str(self._require(step, "service_name"))
        services = await self.inspectors.service.list_optimizable_services()
        service = next((s for s in services if s.service_name == name), None)
        if service is None:
            raise StepError(f"service '{name}' no longer exists")
        return await self.inspectors.service.apply_service_optimization(service)

    async def _step_apply_tweak(self, step: OptimizationStep) -> bool:
        tweak_id = str(self._require(step, "tweak_id"))
        tweaks = await self.inspectors.os.list_os_tweaks()
        if not any(t.id == tweak_id for t in tweaks):
            raise StepError(f"OS tweak '{tweak_id}' no longer exists")
        return await self.inspectors.os.apply_os_tweak(tweak_id)

    async def _step_terminate_process(self, step: OptimizationStep) -> bool:
        try:
            pid = int(self._require(step, "pid"))
        except (TypeError, ValueError):
            raise StepError(f"invalid pid {step.parameters.get('pid')!r}")
        return await self.inspectors.process.terminate_process(pid)

    async def _step_block_connection(self, step: OptimizationStep) -> bool:
        remote_ip = str(self._require(step, "remote_ip"))
        port = step.parameters.get("remote_port")
        pid = step.parameters.get("pid")

        connections = await self.inspectors.network.collect_connections()
        conn = next((
            c for c in connections
            if c.remote_ip == remote_ip
            and (port is None or c.remote_port == int(port))
            and (pid is None or c.pid == int(pid))
        ), None)
        if conn is None:
            raise StepError(f"connection to {remote_ip} no longer exists")
        return await self.inspectors.network.block_connection(conn)

    async def _step_update_driver(self, step: OptimizationStep) -> bool:
        raise StepError("driver updates are not supported by any inspector")
