"""
Deterministic in-memory inspectors for engine and executor tests.
Each fake records the mutating calls it receives.
"""
import asyncio
from typing import Dict, List, Optional

from sysvital.core.interfaces import Inspectors
from sysvital.core.schemas import (
    BootImpact, CleanupResult, ConnectionSnapshot, DiskAnalysis, HardwareHealth,
    HardwareSnapshot, OSSnapshot, OSTweak, ProcessSnapshot, RegistryFixResult,
    RegistryIssue, RegistryScan, ResourceUsage, ServiceOptimization, StartupProgram,
    StartupRecommendation,
)

GIB = 1024 ** 3
MIB = 1024 ** 2


class FakeHardware:
    def __init__(self, health: int = 90, fail: bool = False) -> None:
        self.health = health
        self.fail = fail

    async def collect_hardware(self) -> HardwareSnapshot:
        if self.fail:
            raise RuntimeError("WMI unavailable")
        return HardwareSnapshot(cpu_name="Fake CPU", cpu_cores=8, logical_processors=16,
                                memory_total_bytes=16 * GIB)

    async def get_hardware_health(self) -> HardwareHealth:
        if self.fail:
            raise RuntimeError("WMI unavailable")
        return HardwareHealth(overall_health_percentage=self.health)


class FakeProcess:
    def __init__(self, processes: Optional[List[ProcessSnapshot]] = None,
                 cpu: float = 20.0, memory: float = 40.0, fail: bool = False) -> None:
        self.processes = processes or []
        self.cpu = cpu
        self.memory = memory
        self.fail = fail
        self.terminated: List[int] = []

    async def collect_processes(self) -> List[ProcessSnapshot]:
        if self.fail:
            raise RuntimeError("process enumeration failed")
        return list(self.processes)

    async def collect_resource_usage(self) -> ResourceUsage:
        if self.fail:
            raise RuntimeError("process enumeration failed")
        return ResourceUsage(cpu_percent=self.cpu, memory_percent=self.memory,
                             process_count=len(self.processes))

    async def terminate_process(self, pid: int) -> bool:
        self.terminated.append(pid)
        return True


class FakeNetwork:
    def __init__(self, connections: Optional[List[ConnectionSnapshot]] = None, fail: bool = False) -> None:
        self.connections = connections or []
        self.fail = fail
        self.blocked: List[ConnectionSnapshot] = []

    async def collect_connections(self) -> List[ConnectionSnapshot]:
        if self.fail:
            raise RuntimeError("netstat failed")
        return list(self.connections)

    async def block_connection(self, conn: ConnectionSnapshot) -> bool:
        self.blocked.append(conn)
        return True


class FakeOS:
    def __init__(self, tweaks: Optional[List[OSTweak]] = None, fail: bool = False) -> None:
        self.tweaks = tweaks or []
        self.fail = fail
        self.applied: List[str] = []

    async def collect_os(self) -> OSSnapshot:
        if self.fail:
            raise RuntimeError("os query failed")
        return OSSnapshot(name="Windows", version="11", build="22631", architecture="AMD64")

    async def list_os_tweaks(self) -> List[OSTweak]:
        if self.fail:
            raise RuntimeError("os query failed")
        return list(self.tweaks)

    async def apply_os_tweak(self, tweak_id: str) -> bool:
        self.applied.append(tweak_id)
        return True


class FakeDisk:
    def __init__(self, usage: float = 50.0, cleanable: int = 0, fail: bool = False,
                 cleanup_ok: bool = True) -> None:
        self.usage = usage
        self.cleanable = cleanable
        self.fail = fail
        self.cleanup_ok = cleanup_ok
        self.cleanups = 0

    async def analyze_disk(self) -> DiskAnalysis:
        if self.fail:
            raise RuntimeError("disk scan failed")
        return DiskAnalysis(usage_percent=self.usage, cleanable_bytes=self.cleanable)

    async def run_disk_cleanup(self) -> CleanupResult:
        self.cleanups += 1
        return CleanupResult(success=self.cleanup_ok, bytes_cleaned=self.cleanable if self.cleanup_ok else 0)


class FakeRegistry:
    def __init__(self, issue_count: int = 0, fail: bool = False) -> None:
        self.issues = [RegistryIssue(id=f"HKCU\\Run\\entry{i}", key_path="HKCU\\Run", value_name=f"entry{i}")
                       for i in range(issue_count)]
        self.fail = fail
        self.fixed: List[RegistryIssue] = []

    async def scan_registry(self) -> RegistryScan:
        if self.fail:
            raise RuntimeError("registry scan failed")
        return RegistryScan(issue_count=len(self.issues), issues=self.issues)

    async def fix_registry_issues(self, issues: List[RegistryIssue]) -> RegistryFixResult:
        self.fixed.extend(issues)
        return RegistryFixResult(fixed=len(issues))


class FakeStartup:
    def __init__(self, programs: Optional[List[StartupProgram]] = None, fail: bool = False) -> None:
        self.programs = programs or []
        self.fail = fail
        self.toggled: Dict[str, bool] = {}

    async def list_startup_programs(self) -> List[StartupProgram]:
        if self.fail:
            raise RuntimeError("startup query failed")
        return list(self.programs)

    async def set_startup_enabled(self, program: StartupProgram, enabled: bool) -> bool:
        self.toggled[program.id] = enabled
        return True

    async def analyze_boot_impact(self) -> BootImpact:
        if self.fail:
            raise RuntimeError("startup query failed")
        recs = [StartupRecommendation(program=p, reason="Not needed at boot",
                                      estimated_time_saving_ms=p.estimated_delay_ms)
                for p in self.programs if p.is_enabled]
        return BootImpact(total_saving_seconds=sum(r.estimated_time_saving_ms for r in recs) / 1000,
                          recommendations=recs)


class FakeService:
    def __init__(self, services: Optional[List[ServiceOptimization]] = None, fail: bool = False) -> None:
        self.services = services or []
        self.fail = fail
        self.applied: List[str] = []

    async def list_optimizable_services(self) -> List[ServiceOptimization]:
        if self.fail:
            raise RuntimeError("service query failed")
        return list(self.services)

    async def apply_service_optimization(self, opt: ServiceOptimization) -> bool:
        self.applied.append(opt.service_name)
        return True


class SlowHardware(FakeHardware):
    """Never answers within a reasonable timeout."""

    async def collect_hardware(self) -> HardwareSnapshot:
        await asyncio.sleep(10)
        return await super().collect_hardware()


def make_inspectors(**overrides) -> Inspectors:
    parts = {
        "hardware": FakeHardware(),
        "process": FakeProcess(),
        "network": FakeNetwork(),
        "os": FakeOS(),
        "disk": FakeDisk(),
        "registry": FakeRegistry(),
        "startup": FakeStartup(),
        "service": FakeService(),
    }
    parts.update(overrides)
    return Inspectors(**parts)


def failing_inspectors() -> Inspectors:
    return make_inspectors(
        hardware=FakeHardware(fail=True),
        process=FakeProcess(fail=True),
        network=FakeNetwork(fail=True),
        os=FakeOS(fail=True),
        disk=FakeDisk(fail=True),
        registry=FakeRegistry(fail=True),
        startup=FakeStartup(fail=True),
        service=FakeService(fail=True),
    )


class FakeNarrator:
    """Scripted narrator: returns `reply` or raises `error`."""

    def __init__(self, reply: str = "", error: Optional[Exception] = None) -> None:
        self.reply = reply
        self.error = error
        self.prompts: List[str] = []

    @property
    def is_configured(self) -> bool:
        return True

    async def complete(self, prompt: str, options=None) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply
