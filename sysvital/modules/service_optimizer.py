"""
SysVital - Service Inspector
Matches installed Windows services against a table of known-optional services.
Applying an optimization switches the service to manual (demand) start.
"""
import asyncio
import subprocess
import sys
from typing import Dict, List

import psutil

from sysvital.core.schemas import SafetyLevel, ServiceOptimization
from sysvital.utils.logger import Logger

# service_name -> (reason, safety, boot saving ms)
KNOWN_OPTIONAL_SERVICES: Dict[str, tuple] = {
    "DiagTrack": ("Telemetry upload (Connected User Experiences)", SafetyLevel.SAFE, 400),
    "dmwappushservice": ("WAP push message routing for telemetry", SafetyLevel.SAFE, 200),
    "MapsBroker": ("Downloaded maps manager, unused without offline maps", SafetyLevel.SAFE, 150),
    "Fax": ("Fax service, unused without a fax modem", SafetyLevel.SAFE, 100),
    "RetailDemo": ("Retail demo experience", SafetyLevel.SAFE, 100),
    "XblGameSave": ("Xbox Live game save sync", SafetyLevel.MOSTLY_SAFE, 150),
    "WSearch": ("Windows Search indexing", SafetyLevel.CONDITIONAL, 600),
    "SysMain": ("Superfetch memory prefetching", SafetyLevel.CONDITIONAL, 500),
}


class ServiceOptimizer:
    def __init__(self) -> None:
        self.logger = Logger()

    def _scan(self) -> List[ServiceOptimization]:
        if sys.platform != "win32":
            return []

        optimizations = []
        for service in psutil.win_service_iter():
            try:
                name = service.name()
                if name not in KNOWN_OPTIONAL_SERVICES or service.start_type() != "automatic":
                    continue
                reason, safety, saving_ms = KNOWN_OPTIONAL_SERVICES[name]
                optimizations.append(ServiceOptimization(
                    service_name=name,
                    display_name=service.display_name(),
                    reason=reason,
                    safety=safety,
                    requires_restart=False,
                    estimated_boot_time_saving_ms=saving_ms,
                ))
            except (psutil.NoSuchProcess, psutil.AccessDenied):
                continue
        return optimizations

    def _apply(self, opt: ServiceOptimization) -> bool:
        if sys.platform != "win32":
            self.logger.warning("Service optimization is only available on Windows")
            return False
        if opt.safety == SafetyLevel.DO_NOT_DISABLE:
            self.logger.warning(f"Refusing to change protected service {opt.service_name}")
            return False

        try:
            proc = subprocess.run(
                ["sc", "config", opt.service_name, "start=", "demand"],
                capture_output=True, text=True, timeout=30,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            self.logger.error(f"sc config {opt.service_name} failed: {e}")
            return False

        if proc.returncode != 0:
            self.logger.error(f"sc config {opt.service_name} returned {proc.returncode}: {proc.stdout.strip()}")
            return False
        self.logger.info(f"Service {opt.service_name} set to manual start")
        return True

    async def list_optimizable_services(self) -> List[ServiceOptimization]:
        return await asyncio.to_thread(self._scan)

    async def apply_service_optimization(self, opt: ServiceOptimization) -> bool:
        return await asyncio.to_thread(self._apply, opt)
