"""
SysVital Data Contracts
Snapshots returned by the domain inspectors. Immutable once returned.
"""
from enum import Enum
from typing import Optional, Tuple
from pydantic import BaseModel, ConfigDict

GIB = 1024 ** 3


class Snapshot(BaseModel):
    model_config = ConfigDict(frozen=True)


# --- HARDWARE ---
class StorageDevice(Snapshot):
    model: str = "Unknown"
    size_bytes: int = 0
    is_ssd: bool = False


class HardwareSnapshot(Snapshot):
    cpu_name: str = "Unknown"
    cpu_cores: int = 0
    logical_processors: int = 0
    memory_total_bytes: int = 0
    storage: Tuple[StorageDevice, ...] = ()

    @property
    def memory_total_gb(self) -> float:
        return self.memory_total_bytes / GIB


class HealthIssue(Snapshot):
    issue: str
    severity: str = "Warning"  # Critical, Warning, Info
    recommendation: str = ""


class HardwareHealth(Snapshot):
    overall_health_percentage: int = 100
    issues: Tuple[HealthIssue, ...] = ()


# --- PROCESOS ---
class ProcessSnapshot(Snapshot):
    pid: int
    name: str = ""
    exe_path: str = ""
    cpu_percent: float = 0.0
    memory_bytes: int = 0
    handle_count: int = 0
    is_signed: Optional[bool] = None  # None = firma no verificable en esta plataforma
    publisher: Optional[str] = None


class ResourceUsage(Snapshot):
    cpu_percent: float = 0.0
    memory_percent: float = 0.0
    process_count: int = 0


# --- RED ---
class ConnectionSnapshot(Snapshot):
    process_name: str = ""
    pid: int = 0
    local_ip: str = ""
    local_port: int = 0
    remote_ip: str = ""
    remote_port: int = 0
    protocol: str = "TCP"
    state: str = "ESTABLISHED"
    bytes_sent: int = 0
    bytes_received: int = 0
    country: str = ""

    @property
    def identity(self) -> str:
        return f"{self.process_name or '?'}[{self.pid}] {self.local_ip}:{self.local_port} -> {self.remote_ip}:{self.remote_port}"


# --- SISTEMA OPERATIVO ---
class OSSnapshot(Snapshot):
    name: str = "Unknown"
    version: str = ""
    build: str = ""
    architecture: str = ""
    uptime_seconds: int = 0


class TweakImpact(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class OSTweak(Snapshot):
    id: str
    name: str
    description: str = ""
    category: str = "Performance"
    impact: TweakImpact = TweakImpact.LOW
    requires_restart: bool = False


# --- DISCO ---
class CleanupCategory(Snapshot):
    name: str
    size_bytes: int = 0
    file_count: int = 0


class DiskAnalysis(Snapshot):
    usage_percent: float = 0.0
    cleanable_bytes: int = 0
    categories: Tuple[CleanupCategory, ...] = ()


class CleanupResult(Snapshot):
    success: bool
    bytes_cleaned: int = 0
    errors: Tuple[str, ...] = ()


# --- REGISTRO ---
class RegistryIssue(Snapshot):
    id: str
    key_path: str
    value_name: str = ""
    description: str = ""
    severity: str = "Low"


class RegistryScan(Snapshot):
    issue_count: int = 0
    issues: Tuple[RegistryIssue, ...] = ()


class RegistryFixResult(Snapshot):
    fixed: int = 0
    failed: int = 0

    @property
    def success(self) -> bool:
        return self.failed == 0


# --- INICIO ---
class StartupProgram(Snapshot):
    id: str
    name: str
    command: str = ""
    location: str = ""
    is_enabled: bool = True
    estimated_delay_ms: int = 0


class StartupRecommendation(Snapshot):
    program: StartupProgram
    reason: str = ""
    estimated_time_saving_ms: int = 0


class BootImpact(Snapshot):
    total_saving_seconds: float = 0.0
    recommendations: Tuple[StartupRecommendation, ...] = ()


# --- SERVICIOS ---
class SafetyLevel(str, Enum):
    SAFE = "Safe"
    MOSTLY_SAFE = "MostlySafe"
    CONDITIONAL = "Conditional"
    RISKY = "Risky"
    DO_NOT_DISABLE = "DoNotDisable"


class ServiceOptimization(Snapshot):
    service_name: str
    display_name: str = ""
    reason: str = ""
    safety: SafetyLevel = SafetyLevel.CONDITIONAL
    requires_restart: bool = False
    estimated_boot_time_saving_ms: int = 0
