"""
SysVital Analysis Models
Reports, findings, recommendations and optimization plans produced by the engine.
"""
import uuid
from datetime import datetime, timedelta
from enum import Enum, IntEnum
from typing import Any, Dict, FrozenSet, Generic, Optional, Tuple, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from sysvital.core.schemas import (
    BootImpact, ConnectionSnapshot, DiskAnalysis, HardwareHealth, HardwareSnapshot,
    OSSnapshot, OSTweak, ProcessSnapshot, RegistryScan, ResourceUsage,
    ServiceOptimization, StartupProgram,
)

T = TypeVar("T")


def clamp_score(value: float) -> int:
    """Clamps a score into [0, 100], truncating toward zero."""
    return max(0, min(100, int(value)))


class FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True)


# --- ENUMS ---
class SuspicionLevel(IntEnum):
    NONE = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4


# Threat levels share the suspicion scale.
ThreatLevel = SuspicionLevel


class SuspicionReason(str, Enum):
    HIGH_CPU_USAGE = "HighCpuUsage"
    HIGH_MEMORY_USAGE = "HighMemoryUsage"
    UNKNOWN_PUBLISHER = "UnknownPublisher"
    SUSPICIOUS_LOCATION = "SuspiciousLocation"
    SYSTEM_RESOURCE_ABUSE = "SystemResourceAbuse"


class RecommendedAction(str, Enum):
    MONITOR = "Monitor"
    LOWER_PRIORITY = "LowerPriority"
    THROTTLE = "Throttle"
    TERMINATE = "Terminate"
    QUARANTINE = "Quarantine"
    BLOCK = "Block"


class Priority(IntEnum):
    LOW = 0
    MEDIUM = 1
    HIGH = 2
    CRITICAL = 3


class Category(str, Enum):
    HARDWARE = "Hardware"
    PERFORMANCE = "Performance"
    SECURITY = "Security"
    STORAGE = "Storage"
    STARTUP = "Startup"
    SERVICES = "Services"
    REGISTRY = "Registry"
    NETWORK = "Network"


class StepType(str, Enum):
    CLEAN_DISK = "CleanDisk"
    FIX_REGISTRY = "FixRegistry"
    DISABLE_STARTUP_ITEM = "DisableStartupItem"
    DISABLE_SERVICE = "DisableService"
    APPLY_OS_TWEAK = "ApplyOSTweak"
    TERMINATE_PROCESS = "TerminateProcess"
    BLOCK_CONNECTION = "BlockConnection"
    UPDATE_DRIVER = "UpdateDriver"


class ExecutionState(str, Enum):
    IDLE = "Idle"
    RUNNING = "Running"
    COMPLETED = "Completed"
    COMPLETED_WITH_ERRORS = "CompletedWithErrors"


# --- RESULTADOS DE COLABORADORES ---
class CallResult(BaseModel, Generic[T]):
    """Outcome of one collaborator call: either a value or an error message."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    value: Optional[T] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class SystemData(FrozenModel):
    """Joined output of one gather phase. Missing snapshots are None."""
    hardware: Optional[HardwareSnapshot] = None
    hardware_health: Optional[HardwareHealth] = None
    os: Optional[OSSnapshot] = None
    resources: Optional[ResourceUsage] = None
    processes: Tuple[ProcessSnapshot, ...] = ()
    connections: Tuple[ConnectionSnapshot, ...] = ()
    disk: Optional[DiskAnalysis] = None
    registry: Optional[RegistryScan] = None
    startup_programs: Tuple[StartupProgram, ...] = ()
    boot_impact: Optional[BootImpact] = None
    services: Tuple[ServiceOptimization, ...] = ()
    tweaks: Tuple[OSTweak, ...] = ()
    errors: Dict[str, str] = {}


# --- CLASIFICACIÓN ---
class SuspicionFinding(FrozenModel):
    entity_ref: str
    name: str = ""
    level: SuspicionLevel
    reasons: FrozenSet[SuspicionReason]
    recommended_action: RecommendedAction
    description: str = ""


class ThreatAssessment(FrozenModel):
    entity_ref: str
    score: float
    level: ThreatLevel
    reasons: Tuple[str, ...] = ()
    narrative: Optional[str] = None

    @field_validator("score")
    @classmethod
    def _clamp(cls, v: float) -> float:
        return max(0.0, min(100.0, v))


# --- INFORME ---
class DomainAnalysis(FrozenModel):
    health_score: int = 100
    issues: Tuple[str, ...] = ()
    strengths: Tuple[str, ...] = ()
    metrics: Dict[str, float] = {}

    @field_validator("health_score")
    @classmethod
    def _clamp(cls, v: int) -> int:
        return clamp_score(v)


class Recommendation(FrozenModel):
    title: str
    description: str
    priority: Priority
    category: Category
    estimated_impact_score: int
    action_required: str
    automation_available: bool = True

    @field_validator("estimated_impact_score")
    @classmethod
    def _clamp(cls, v: int) -> int:
        return clamp_score(v)


class SystemAnalysisReport(FrozenModel):
    timestamp: datetime = Field(default_factory=datetime.now)
    overall_health_score: int
    hardware: DomainAnalysis
    software: DomainAnalysis
    performance: DomainAnalysis
    security: DomainAnalysis
    recommendations: Tuple[Recommendation, ...] = ()
    summary: str = ""
    insights: Optional[str] = None

    @field_validator("overall_health_score")
    @classmethod
    def _clamp(cls, v: int) -> int:
        return clamp_score(v)

    @property
    def domains(self) -> Dict[str, DomainAnalysis]:
        return {
            "hardware": self.hardware,
            "software": self.software,
            "performance": self.performance,
            "security": self.security,
        }


# --- PLAN DE OPTIMIZACIÓN ---
class OptimizationStep(FrozenModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    title: str
    description: str = ""
    type: StepType
    parameters: Dict[str, Any] = {}
    requires_confirmation: bool = False
    requires_restart: bool = False


class OptimizationPlan(FrozenModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = Field(default_factory=datetime.now)
    steps: Tuple[OptimizationStep, ...] = ()
    estimated_time_saving_ms: int = 0
    estimated_space_saving_bytes: int = 0
    expected_health_score_increase: int = 0
    rationale: Optional[str] = None


class OptimizationResult(FrozenModel):
    success: bool
    steps_completed: int = 0
    steps_failed: int = 0
    errors: Tuple[str, ...] = ()
    actual_health_score_increase: int = 0
    duration: timedelta = timedelta(0)
    post_narrative: Optional[str] = None
    state: ExecutionState = ExecutionState.COMPLETED
    cancelled: bool = False

    @model_validator(mode="before")
    @classmethod
    def _failures_force_unsuccessful(cls, data: Any) -> Any:
        if isinstance(data, dict) and (data.get("steps_failed", 0) > 0 or data.get("cancelled")):
            data = {**data, "success": False}
        return data
