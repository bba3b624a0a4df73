"""
SysVital - Hardware Inspector
CPU, memory and storage inventory plus a health estimate from sensors and usage.
"""
import asyncio
import platform
from typing import Any, Dict, List

import psutil

from sysvital.core.schemas import HardwareHealth, HardwareSnapshot, HealthIssue, StorageDevice

CRITICAL_TEMP_C = 85.0
WARNING_TEMP_C = 75.0


class HardwareMonitor:
    def _volumes(self) -> Dict[str, Any]:
        """Disk usage per physical device, first mountpoint wins."""
        volumes = {}
        for part in psutil.disk_partitions(all=False):
            if part.device in volumes:
                continue
            try:
                volumes[part.device] = psutil.disk_usage(part.mountpoint)
            except (PermissionError, OSError):
                continue
        return volumes

    def _storage(self) -> List[StorageDevice]:
        return [StorageDevice(model=device, size_bytes=usage.total)
                for device, usage in self._volumes().items()]

    def _inventory(self) -> HardwareSnapshot:
        return HardwareSnapshot(
            cpu_name=platform.processor() or platform.machine() or "Unknown",
            cpu_cores=psutil.cpu_count(logical=False) or 0,
            logical_processors=psutil.cpu_count(logical=True) or 0,
            memory_total_bytes=psutil.virtual_memory().total,
            storage=self._storage(),
        )

    def _temperature_issues(self) -> List[HealthIssue]:
        # sensors_temperatures no existe en Windows
        sensors = getattr(psutil, "sensors_temperatures", None)
        if sensors is None:
            return []
        try:
            readings = sensors() or {}
        except (OSError, RuntimeError):
            return []

        hottest = max((t.current for entries in readings.values() for t in entries if t.current), default=0.0)
        if hottest >= CRITICAL_TEMP_C:
            return [HealthIssue(
                issue=f"Critical temperature: {hottest:.0f}°C",
                severity="Critical",
                recommendation="Check cooling: clean fans and verify airflow",
            )]
        if hottest >= WARNING_TEMP_C:
            return [HealthIssue(
                issue=f"High temperature: {hottest:.0f}°C",
                severity="Warning",
                recommendation="Monitor temperatures under load",
            )]
        return []

    def _health(self) -> HardwareHealth:
        issues = self._temperature_issues()

        if psutil.virtual_memory().percent > 90:
            issues.append(HealthIssue(
                issue="Memory under heavy pressure",
                severity="Warning",
                recommendation="Close unused applications or add more RAM",
            ))

        for device, usage in self._volumes().items():
            percent = usage.percent
            if percent > 95:
                issues.append(HealthIssue(
                    issue=f"Storage {device} almost full ({percent:.0f}%)",
                    severity="Critical",
                    recommendation="Free space or replace the drive with a larger one",
                ))

        penalty = sum(25 if i.severity == "Critical" else 10 for i in issues)
        return HardwareHealth(overall_health_percentage=max(0, 100 - penalty), issues=issues)

    async def collect_hardware(self) -> HardwareSnapshot:
        return await asyncio.to_thread(self._inventory)

    async def get_hardware_health(self) -> HardwareHealth:
        return await asyncio.to_thread(self._health)
