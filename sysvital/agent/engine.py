"""
SysVital Analysis Engine - Health Scoring & Optimization Orchestration

Orchestrates one analysis cycle:

1. Gather: all inspector calls run concurrently and are joined. Every call is
   wrapped into a CallResult so a failing inspector degrades its domain
   instead of aborting the cycle.
2. Classify: processes are classified in one pass; connections are assessed
   one at a time (the narrator may be rate limited).
3. Score: four domain analyses plus the overall score and summary.
4. Recommend: rule-based recommendations, priority ordered.

On request it also builds an optimization plan from fresh snapshots and
executes it through the PlanExecutor.

Each cycle is independent: no state is carried between cycles apart from
the injected, read-only rule tables.
"""
import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional

from pydantic import ValidationError

from sysvital.core.classifiers import ThreatRules, assess_connection, classify_processes
from sysvital.core.config import Config
from sysvital.core.database import DatabaseManager
from sysvital.core.executor import PlanExecutor
from sysvital.core.interfaces import Inspectors, Narrator
from sysvital.core.models import (
    CallResult, OptimizationPlan, OptimizationResult, SystemAnalysisReport, SystemData,
    ThreatAssessment,
)
from sysvital.core.planner import build_plan
from sysvital.core.recommendations import synthesize
from sysvital.core.scoring import build_report
from sysvital.utils.formatting import format_bytes
from sysvital.utils.logger import Logger
from sysvital.utils.narrator import LLMNarrator, NullNarrator


class AnalysisCancelled(Exception):
    """The gather phase was cancelled; partial snapshots were discarded."""


class SystemAnalyzer:
    """Entry point of the engine. All collaborators are injected.

    Args:
        inspectors: The eight domain inspectors.
        narrator: Optional narrator; NullNarrator when omitted.
        rules: Read-only threat rule table for the connection classifier.
        db: Optional event log for scores and step outcomes.
        collect_timeout: Per-call bound (seconds) on inspector calls.
    """

    def __init__(self, inspectors: Inspectors, narrator: Optional[Narrator] = None,
                 rules: Optional[ThreatRules] = None, db: Optional[DatabaseManager] = None,
                 collect_timeout: Optional[float] = None) -> None:
        self.inspectors = inspectors
        self.narrator: Narrator = narrator or NullNarrator()
        self.rules = rules or ThreatRules()
        self.db = db
        self.collect_timeout = collect_timeout
        self.logger = Logger()
        self.executor = PlanExecutor(inspectors, self.analyze_system, narrator=self.narrator, db=db)

    @classmethod
    def from_config(cls, config: Config, inspectors: Optional[Inspectors] = None,
                    use_db: bool = True) -> "SystemAnalyzer":
        """Wires the engine with the default inspectors and configured narrator."""
        if inspectors is None:
            from sysvital.modules import build_default_inspectors
            inspectors = build_default_inspectors(config)

        narrator = LLMNarrator.from_config(config)
        return cls(
            inspectors=inspectors,
            narrator=narrator if narrator.is_configured else NullNarrator(),
            rules=ThreatRules.from_config(config),
            db=DatabaseManager(db_name=config.db_name) if use_db else None,
            collect_timeout=config.collect_timeout,
        )

    # --- RECOLECCIÓN ---
    async def _safe_call(self, name: str, func: Callable[[], Awaitable[Any]]) -> CallResult:
        try:
            if self.collect_timeout:
                value = await asyncio.wait_for(func(), timeout=self.collect_timeout)
            else:
                value = await func()
            return CallResult(name=name, value=value)
        except asyncio.TimeoutError:
            error = f"timed out after {self.collect_timeout}s"
        except Exception as e:
            error = str(e) or type(e).__name__
        self.logger.warning(f"Collection '{name}' failed: {error}")
        return CallResult(name=name, error=error)

    def _collection_calls(self) -> Dict[str, Callable[[], Awaitable[Any]]]:
        i = self.inspectors
        return {
            "hardware": i.hardware.collect_hardware,
            "hardware_health": i.hardware.get_hardware_health,
            "os": i.os.collect_os,
            "tweaks": i.os.list_os_tweaks,
            "resources": i.process.collect_resource_usage,
            "processes": i.process.collect_processes,
            "connections": i.network.collect_connections,
            "disk": i.disk.analyze_disk,
            "registry": i.registry.scan_registry,
            "startup_programs": i.startup.list_startup_programs,
            "boot_impact": i.startup.analyze_boot_impact,
            "services": i.service.list_optimizable_services,
        }

    async def collect(self, cancel: Optional[asyncio.Event] = None) -> SystemData:
        """
        Fans out to every inspector and joins.

        Raises:
            AnalysisCancelled: `cancel` was set; checked after each call completes
        """
        if cancel is not None and cancel.is_set():
            raise AnalysisCancelled("Analysis cancelled before collection")

        tasks = [asyncio.ensure_future(self._safe_call(name, func))
                 for name, func in self._collection_calls().items()]
        outcomes: List[CallResult] = []
        try:
            for next_done in asyncio.as_completed(tasks):
                outcomes.append(await next_done)
                if cancel is not None and cancel.is_set():
                    raise AnalysisCancelled(
                        f"Analysis cancelled after {len(outcomes)}/{len(tasks)} collections"
                    )
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()

        return self._assemble(outcomes)

    def _assemble(self, outcomes: List[CallResult]) -> SystemData:
        values = {o.name: o.value for o in outcomes if o.ok and o.value is not None}
        errors = {o.name: o.error for o in outcomes if not o.ok}
        try:
            return SystemData(**values, errors=errors)
        except ValidationError as exc:
            for err in exc.errors():
                field = str(err["loc"][0]) if err.get("loc") else ""
                if field in values:
                    values.pop(field)
                    errors[field] = f"invalid snapshot: {err['msg']}"
                    self.logger.warning(f"Collection '{field}' returned an invalid snapshot")
            return SystemData(**values, errors=errors)

    # --- ANÁLISIS ---
    async def analyze_system(self, cancel: Optional[asyncio.Event] = None) -> SystemAnalysisReport:
        """Runs one full analysis cycle and returns the report."""
        data = await self.collect(cancel)
        return await self.analyze(data)

    async def assess_connections(self, data: SystemData) -> List[ThreatAssessment]:
        assessments = []
        # Secuencial a propósito: el narrador puede estar limitado por cuota
        for conn in data.connections:
            assessments.append(await assess_connection(conn, self.rules, self.narrator))
        return assessments

    async def analyze(self, data: SystemData) -> SystemAnalysisReport:
        """Scores already-gathered data. Pure apart from narrator and event log."""
        findings = classify_processes(data.processes)
        assessments = await self.assess_connections(data)

        report = build_report(data, findings, assessments)
        report = report.model_copy(update={"recommendations": tuple(synthesize(data, findings))})

        insights = await self._narrate(self._insights_prompt(report, data), {"max_tokens": 300, "temperature": 0.6})
        if insights:
            report = report.model_copy(update={"insights": insights})

        if self.db is not None:
            self.db.record_analysis(report)
        self.logger.info(
            f"Analysis complete: overall {report.overall_health_score}/100 "
            f"(hw {report.hardware.health_score}, sw {report.software.health_score}, "
            f"perf {report.performance.health_score}, sec {report.security.health_score})"
        )
        return report

    # --- PLAN ---
    async def generate_plan(self, cancel: Optional[asyncio.Event] = None) -> OptimizationPlan:
        """Builds an optimization plan from fresh snapshots."""
        data = await self.collect(cancel)
        report = await self.analyze(data)
        plan = build_plan(data)

        rationale = await self._narrate(
            "Explain why this optimization plan will improve the system:\n\n"
            f"Current Health Score: {report.overall_health_score}/100\n"
            f"Optimization Steps: {len(plan.steps)}\n"
            f"Expected Improvement: +{plan.expected_health_score_increase} points\n"
            f"Space Savings: {format_bytes(plan.estimated_space_saving_bytes)}\n"
            f"Time Savings: {plan.estimated_time_saving_ms // 1000}s boot time\n\n"
            "Provide a brief rationale (2-3 sentences).",
            {"max_tokens": 150, "temperature": 0.6},
        )
        if rationale:
            plan = plan.model_copy(update={"rationale": rationale})

        self.logger.info(f"Plan {plan.id} built with {len(plan.steps)} steps")
        return plan

    async def execute_plan(self, plan: OptimizationPlan,
                           cancel: Optional[asyncio.Event] = None) -> OptimizationResult:
        return await self.executor.execute(plan, cancel)

    # --- NARRATIVAS ---
    async def explain_status(self) -> str:
        report = await self.analyze_system()
        prompt = (
            "Provide a friendly, concise explanation of this system's status for a non-technical user:\n\n"
            f"Overall Health Score: {report.overall_health_score}/100\n"
            f"Hardware: {report.hardware.health_score}/100; issues: {', '.join(report.hardware.issues) or 'none'}\n"
            f"Performance: {report.performance.health_score}/100; bottlenecks: {', '.join(report.performance.issues) or 'none'}\n"
            f"Software: {report.software.health_score}/100\n"
            f"Security: {report.security.health_score}/100; threats: {int(report.security.metrics.get('threats', 0))}\n\n"
            "Provide a 2-3 paragraph explanation that summarizes the status, highlights concerns and gives advice."
        )
        narrative = await self._narrate(prompt, {"max_tokens": 500, "temperature": 0.7})
        return narrative or basic_explanation(report)

    async def ask_question(self, question: str) -> str:
        if not self.narrator.is_configured:
            return "Narrator not configured. Set SYSVITAL_NARRATOR_API_KEY to enable questions."
        report = await self.analyze_system()
        prompt = (
            "System Context:\n"
            f"Overall Health: {report.overall_health_score}/100\n"
            f"Hardware Score: {report.hardware.health_score}/100\n"
            f"Performance Score: {report.performance.health_score}/100\n"
            f"Security Score: {report.security.health_score}/100\n\n"
            f"User Question: {question}\n\n"
            "Provide a helpful, accurate answer based on the system context. Be concise and actionable."
        )
        answer = await self._narrate(prompt, {"max_tokens": 300, "temperature": 0.5})
        return answer or "The narrator could not answer right now. Please try again later."

    async def _narrate(self, prompt: str, options: Dict[str, Any]) -> Optional[str]:
        if not self.narrator.is_configured:
            return None
        try:
            return await self.narrator.complete(prompt, options) or None
        except Exception as e:
            self.logger.warning(f"Narrative generation failed: {e}")
            return None

    @staticmethod
    def _insights_prompt(report: SystemAnalysisReport, data: SystemData) -> str:
        hw = data.hardware
        os_info = data.os
        lines = ["Analyze this system and provide expert insights:", ""]
        if os_info is not None:
            lines.append(f"OS: {os_info.name} {os_info.version} (Build {os_info.build})")
        if hw is not None:
            lines.append(f"CPU: {hw.cpu_name} ({hw.cpu_cores} cores)")
            lines.append(f"RAM: {hw.memory_total_gb:.1f} GB")
        lines.extend([
            "",
            "Health Scores:",
            f"- Hardware: {report.hardware.health_score}/100",
            f"- Software: {report.software.health_score}/100",
            f"- Performance: {report.performance.health_score}/100",
            f"- Security: {report.security.health_score}/100",
            "",
            "Provide 2-3 key insights about this system's health and performance.",
        ])
        return "\n".join(lines)


def basic_explanation(report: SystemAnalysisReport) -> str:
    """Deterministic status text used when no narrator is available."""
    top = (f"Top recommendation: {report.recommendations[0].title}"
           if report.recommendations else "No immediate actions required.")
    return (
        f"Your system health score is {report.overall_health_score}/100.\n\n"
        f"{report.summary}\n\n"
        "Key areas:\n"
        f"- Hardware: {report.hardware.health_score}/100\n"
        f"- Performance: {report.performance.health_score}/100\n"
        f"- Software: {report.software.health_score}/100\n"
        f"- Security: {report.security.health_score}/100\n\n"
        f"{top}"
    )
