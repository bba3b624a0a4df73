"""
Optimization Plan Builder

Turns fresh domain snapshots into an ordered list of typed, parameterized
steps. Emission order is disk -> registry -> startup -> services -> OS tweaks;
later categories assume earlier cleanups already freed resources.
"""
from typing import List

from sysvital.core.models import OptimizationPlan, OptimizationStep, StepType, SystemData
from sysvital.core.schemas import SafetyLevel, TweakImpact
from sysvital.utils.formatting import format_bytes

MIB = 1024 ** 2

CLEAN_DISK_THRESHOLD = 100 * MIB
MAX_STEPS_PER_CATEGORY = 5
POINTS_PER_STEP = 3
MAX_EXPECTED_INCREASE = 30


def build_plan(data: SystemData) -> OptimizationPlan:
    steps: List[OptimizationStep] = []
    time_saving_ms = 0
    space_saving_bytes = 0

    # 1. Disco
    disk = data.disk
    if disk is not None and disk.cleanable_bytes > CLEAN_DISK_THRESHOLD:
        steps.append(OptimizationStep(
            title="Clean Disk",
            description=f"Remove {format_bytes(disk.cleanable_bytes)} of temporary files and caches",
            type=StepType.CLEAN_DISK,
            requires_confirmation=False,
            requires_restart=False,
        ))
        space_saving_bytes += disk.cleanable_bytes

    # 2. Registro
    registry = data.registry
    removed_ids = set()
    if registry is not None and registry.issue_count > 0:
        # FIX_REGISTRY borra estas entradas antes de los pasos de inicio
        removed_ids = {issue.id for issue in registry.issues}
        steps.append(OptimizationStep(
            title="Fix Registry Issues",
            description=f"Fix {registry.issue_count} registry issues",
            type=StepType.FIX_REGISTRY,
            requires_confirmation=True,
            requires_restart=False,
        ))

    # 3. Programas de inicio (mayor ahorro primero)
    if data.boot_impact is not None:
        candidates = [r for r in data.boot_impact.recommendations if r.program.id not in removed_ids]
        ranked = sorted(candidates, key=lambda r: r.estimated_time_saving_ms, reverse=True)
        for rec in ranked[:MAX_STEPS_PER_CATEGORY]:
            steps.append(OptimizationStep(
                title=f"Disable Startup: {rec.program.name}",
                description=rec.reason,
                type=StepType.DISABLE_STARTUP_ITEM,
                parameters={"program_id": rec.program.id},
                requires_confirmation=True,
                requires_restart=False,
            ))
            time_saving_ms += rec.estimated_time_saving_ms

    # 4. Servicios seguros
    safe_services = [s for s in data.services if s.safety == SafetyLevel.SAFE]
    for service in safe_services[:MAX_STEPS_PER_CATEGORY]:
        steps.append(OptimizationStep(
            title=f"Optimize Service: {service.display_name or service.service_name}",
            description=service.reason,
            type=StepType.DISABLE_SERVICE,
            parameters={"service_name": service.service_name},
            requires_confirmation=False,
            requires_restart=service.requires_restart,
        ))
        time_saving_ms += service.estimated_boot_time_saving_ms

    # 5. Ajustes del sistema operativo
    tweaks = [t for t in data.tweaks if t.impact != TweakImpact.HIGH]
    for tweak in tweaks[:MAX_STEPS_PER_CATEGORY]:
        steps.append(OptimizationStep(
            title=tweak.name,
            description=tweak.description,
            type=StepType.APPLY_OS_TWEAK,
            parameters={"tweak_id": tweak.id},
            requires_confirmation=tweak.impact == TweakImpact.HIGH,
            requires_restart=tweak.requires_restart,
        ))

    return OptimizationPlan(
        steps=steps,
        estimated_time_saving_ms=time_saving_ms,
        estimated_space_saving_bytes=space_saving_bytes,
        expected_health_score_increase=min(MAX_EXPECTED_INCREASE, len(steps) * POINTS_PER_STEP),
    )
