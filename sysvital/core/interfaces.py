"""
Collaborator contracts consumed by the engine.
Every inspector call is a coroutine returning an immutable snapshot, or a bool for mutating calls.
"""
from typing import Any, Dict, List, Optional, Protocol

from sysvital.core.schemas import (
    BootImpact, CleanupResult, ConnectionSnapshot, DiskAnalysis, HardwareHealth,
    HardwareSnapshot, OSSnapshot, OSTweak, ProcessSnapshot, RegistryFixResult,
    RegistryIssue, RegistryScan, ResourceUsage, ServiceOptimization, StartupProgram,
)


class HardwareInspector(Protocol):
    async def collect_hardware(self) -> HardwareSnapshot: ...
    async def get_hardware_health(self) -> HardwareHealth: ...


class ProcessInspector(Protocol):
    async def collect_processes(self) -> List[ProcessSnapshot]: ...
    async def collect_resource_usage(self) -> ResourceUsage: ...
    async def terminate_process(self, pid: int) -> bool: ...


class NetworkInspector(Protocol):
    async def collect_connections(self) -> List[ConnectionSnapshot]: ...
    async def block_connection(self, conn: ConnectionSnapshot) -> bool: ...


class OSInspector(Protocol):
    async def collect_os(self) -> OSSnapshot: ...
    async def list_os_tweaks(self) -> List[OSTweak]: ...
    async def apply_os_tweak(self, tweak_id: str) -> bool: ...


class DiskInspector(Protocol):
    async def analyze_disk(self) -> DiskAnalysis: ...
    async def run_disk_cleanup(self) -> CleanupResult: ...


class RegistryInspector(Protocol):
    async def scan_registry(self) -> RegistryScan: ...
    async def fix_registry_issues(self, issues: List[RegistryIssue]) -> RegistryFixResult: ...


class StartupInspector(Protocol):
    async def list_startup_programs(self) -> List[StartupProgram]: ...
    async def set_startup_enabled(self, program: StartupProgram, enabled: bool) -> bool: ...
    async def analyze_boot_impact(self) -> BootImpact: ...


class ServiceInspector(Protocol):
    async def list_optimizable_services(self) -> List[ServiceOptimization]: ...
    async def apply_service_optimization(self, opt: ServiceOptimization) -> bool: ...


class Narrator(Protocol):
    """Optional text-completion capability. Absence only suppresses prose fields."""

    @property
    def is_configured(self) -> bool: ...

    async def complete(self, prompt: str, options: Optional[Dict[str, Any]] = None) -> str: ...


class Inspectors:
    """Bundle of the eight domain inspectors injected into the engine."""

    def __init__(self, hardware: HardwareInspector, process: ProcessInspector,
                 network: NetworkInspector, os: OSInspector, disk: DiskInspector,
                 registry: RegistryInspector, startup: StartupInspector,
                 service: ServiceInspector) -> None:
        self.hardware = hardware
        self.process = process
        self.network = network
        self.os = os
        self.disk = disk
        self.registry = registry
        self.startup = startup
        self.service = service
