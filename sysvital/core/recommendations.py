"""
Recommendation Synthesizer

A fixed rule list evaluated against the gathered domain data and the
process findings. Each rule contributes zero or one recommendation (hardware issues
contribute up to three). The result is sorted by priority, highest first;
list.sort is stable, so equal priorities keep rule order.
"""
from typing import List, Sequence

from sysvital.core.models import (
    Category, Priority, Recommendation, SuspicionFinding, SystemData,
)
from sysvital.utils.formatting import format_bytes

MIB = 1024 ** 2

MAX_HARDWARE_RECOMMENDATIONS = 3


def synthesize(data: SystemData, findings: Sequence[SuspicionFinding]) -> List[Recommendation]:
    recommendations: List[Recommendation] = []

    disk = data.disk
    if disk is not None and disk.cleanable_bytes > 500 * MIB:
        recommendations.append(Recommendation(
            title="Clean Up Disk Space",
            description=f"Free up {format_bytes(disk.cleanable_bytes)} by removing temporary files and caches",
            priority=Priority.HIGH if disk.usage_percent > 90 else Priority.MEDIUM,
            category=Category.STORAGE,
            estimated_impact_score=70,
            action_required="Run disk cleanup",
        ))

    boot = data.boot_impact
    if boot is not None and boot.total_saving_seconds > 5:
        recommendations.append(Recommendation(
            title="Optimize Startup Programs",
            description=f"Improve boot time by ~{boot.total_saving_seconds:.0f} seconds by disabling unnecessary startup programs",
            priority=Priority.MEDIUM,
            category=Category.STARTUP,
            estimated_impact_score=60,
            action_required="Review and disable startup programs",
        ))

    if len(data.services) > 5:
        recommendations.append(Recommendation(
            title="Optimize Services",
            description=f"Disable {len(data.services)} unnecessary services to improve performance",
            priority=Priority.MEDIUM,
            category=Category.SERVICES,
            estimated_impact_score=50,
            action_required="Disable recommended services",
        ))

    registry = data.registry
    if registry is not None and registry.issue_count > 10:
        recommendations.append(Recommendation(
            title="Fix Registry Issues",
            description=f"Clean up {registry.issue_count} registry issues",
            priority=Priority.LOW,
            category=Category.REGISTRY,
            estimated_impact_score=30,
            action_required="Run registry cleaner",
        ))

    if findings:
        recommendations.append(Recommendation(
            title="Review Suspicious Processes",
            description=f"Found {len(findings)} suspicious processes that may need attention",
            priority=Priority.HIGH,
            category=Category.SECURITY,
            estimated_impact_score=80,
            action_required="Review and terminate if necessary",
            automation_available=False,
        ))

    health = data.hardware_health
    if health is not None:
        for issue in health.issues[:MAX_HARDWARE_RECOMMENDATIONS]:
            critical = issue.severity == "Critical"
            recommendations.append(Recommendation(
                title=issue.issue,
                description=issue.recommendation,
                priority=Priority.CRITICAL if critical else Priority.HIGH,
                category=Category.HARDWARE,
                estimated_impact_score=90 if critical else 70,
                action_required=issue.recommendation,
                automation_available=False,
            ))

    recommendations.sort(key=lambda r: r.priority, reverse=True)
    return recommendations
