"""
Health Scoring Engine

Deduction-from-100 model: every domain starts at 100 and loses points per
finding, never going below 0. Missing snapshots count as zero findings, so a
domain whose inspector failed scores as if nothing was wrong with it.
"""
from typing import List, Sequence

from sysvital.core.models import (
    DomainAnalysis, SuspicionFinding, SystemAnalysisReport, SystemData,
    ThreatAssessment, ThreatLevel, clamp_score,
)
from sysvital.utils.formatting import format_bytes

GIB = 1024 ** 3

# Used when the hardware inspector returned no health data
DEFAULT_HARDWARE_SCORE = 100


def software_score(registry_issues: int, enabled_startup: int, optimizable_services: int) -> int:
    score = 100
    score -= min(30, registry_issues // 10)
    score -= min(20, max(0, enabled_startup - 10) * 2)
    score -= min(20, optimizable_services // 2)
    return clamp_score(score)


def performance_score(cpu_percent: float, memory_percent: float, disk_percent: float) -> int:
    score = 100

    if cpu_percent > 80:
        score -= 30
    elif cpu_percent > 60:
        score -= 15

    if memory_percent > 90:
        score -= 30
    elif memory_percent > 75:
        score -= 15

    if disk_percent > 95:
        score -= 30
    elif disk_percent > 85:
        score -= 15

    return clamp_score(score)


def security_score(suspicious_processes: int, network_threats: int) -> int:
    score = 100
    score -= min(50, suspicious_processes * 10)
    score -= min(40, network_threats * 15)
    return clamp_score(score)


def overall_score(domains: Sequence[DomainAnalysis]) -> int:
    """Unweighted mean of the four domain scores, rounded toward zero."""
    return clamp_score(sum(d.health_score for d in domains) // len(domains))


def count_network_threats(assessments: Sequence[ThreatAssessment]) -> int:
    return sum(1 for a in assessments if a.level >= ThreatLevel.MEDIUM)


# --- DOMINIOS ---
def analyze_hardware(data: SystemData) -> DomainAnalysis:
    health = data.hardware_health
    score = health.overall_health_percentage if health else DEFAULT_HARDWARE_SCORE
    issues = [i.issue for i in health.issues] if health else []

    strengths: List[str] = []
    hw = data.hardware
    if hw is not None:
        if hw.cpu_cores >= 8:
            strengths.append(f"Excellent CPU with {hw.cpu_cores} cores")
        if hw.memory_total_gb >= 16:
            strengths.append(f"Ample RAM: {hw.memory_total_gb:.1f} GB")
        if any(s.is_ssd for s in hw.storage):
            strengths.append("Fast SSD storage detected")

    return DomainAnalysis(health_score=score, issues=issues, strengths=strengths)


def analyze_software(data: SystemData) -> DomainAnalysis:
    registry_issues = data.registry.issue_count if data.registry else 0
    enabled_startup = sum(1 for p in data.startup_programs if p.is_enabled)
    optimizable = len(data.services)
    cleanable = data.disk.cleanable_bytes if data.disk else 0

    issues: List[str] = []
    if registry_issues:
        issues.append(f"{registry_issues} registry issue(s) found")
    if enabled_startup > 10:
        issues.append(f"{enabled_startup} programs launch at startup")
    if optimizable:
        issues.append(f"{optimizable} service(s) can be optimized")

    return DomainAnalysis(
        health_score=software_score(registry_issues, enabled_startup, optimizable),
        issues=issues,
        metrics={
            "registry_issues": registry_issues,
            "startup_programs": enabled_startup,
            "optimizable_services": optimizable,
            "cleanable_bytes": cleanable,
        },
    )


def analyze_performance(data: SystemData) -> DomainAnalysis:
    cpu = data.resources.cpu_percent if data.resources else 0.0
    mem = data.resources.memory_percent if data.resources else 0.0
    disk = data.disk.usage_percent if data.disk else 0.0

    bottlenecks: List[str] = []
    if cpu > 80:
        bottlenecks.append("High CPU usage detected")
    if mem > 85:
        bottlenecks.append("High memory usage - consider adding more RAM")
    if disk > 90:
        bottlenecks.append("Disk almost full - cleanup recommended")

    return DomainAnalysis(
        health_score=performance_score(cpu, mem, disk),
        issues=bottlenecks,
        metrics={
            "cpu_percent": cpu,
            "memory_percent": mem,
            "disk_percent": disk,
            "bottlenecks": len(bottlenecks),
        },
    )


def analyze_security(findings: Sequence[SuspicionFinding],
                     assessments: Sequence[ThreatAssessment]) -> DomainAnalysis:
    network_threats = count_network_threats(assessments)
    issues = [f"Suspicious process: {f.name} ({f.level.name})" for f in findings]
    issues.extend(
        f"Network threat: {a.entity_ref} ({a.level.name})"
        for a in assessments if a.level >= ThreatLevel.MEDIUM
    )

    return DomainAnalysis(
        health_score=security_score(len(findings), network_threats),
        issues=issues,
        metrics={
            "suspicious_processes": len(findings),
            "network_threats": network_threats,
            "threats": len(findings) + network_threats,
        },
    )


def build_report(data: SystemData, findings: Sequence[SuspicionFinding],
                 assessments: Sequence[ThreatAssessment]) -> SystemAnalysisReport:
    """Produces the report skeleton: analyses and summary, no recommendations yet."""
    hardware = analyze_hardware(data)
    software = analyze_software(data)
    performance = analyze_performance(data)
    security = analyze_security(findings, assessments)

    overall = overall_score([hardware, software, performance, security])
    report = SystemAnalysisReport(
        overall_health_score=overall,
        hardware=hardware,
        software=software,
        performance=performance,
        security=security,
    )
    return report.model_copy(update={"summary": summarize(report)})


def summarize(report: SystemAnalysisReport) -> str:
    parts: List[str] = []

    if report.overall_health_score >= 80:
        parts.append("Your system is in good health.")
    elif report.overall_health_score >= 60:
        parts.append("Your system needs some optimization.")
    else:
        parts.append("Your system requires immediate attention.")

    bottlenecks = int(report.performance.metrics.get("bottlenecks", 0))
    if bottlenecks > 0:
        parts.append(f"{bottlenecks} performance bottleneck(s) detected.")

    threats = int(report.security.metrics.get("threats", 0))
    if threats > 0:
        parts.append(f"{threats} security issue(s) found.")

    cleanable = int(report.software.metrics.get("cleanable_bytes", 0))
    if cleanable > GIB:
        parts.append(f"{format_bytes(cleanable)} can be freed.")

    return " ".join(parts)
