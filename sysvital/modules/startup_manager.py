"""
SysVital - Startup Inspector
Lists Run-key auto-launch programs and toggles them through the
StartupApproved flags used by Task Manager, so entries are never deleted.
"""
import asyncio
import sys
from typing import List

from sysvital.core.schemas import BootImpact, StartupProgram, StartupRecommendation
from sysvital.modules.registry_monitor import RUN_KEY, monitored_hives, read_values
from sysvital.utils.logger import Logger

if sys.platform == "win32":
    import winreg

APPROVED_KEY = r"Software\Microsoft\Windows\CurrentVersion\Explorer\StartupApproved\Run"

# Primer byte del valor binario: par = habilitado, impar = deshabilitado
ENABLED_FLAG = b"\x02" + b"\x00" * 11
DISABLED_FLAG = b"\x03" + b"\x00" * 11

ESSENTIAL_KEYWORDS = [
    "securityhealth", "windowsdefender", "defender", "realtek", "igfx",
    "nvidia", "amd", "synaptics", "audio", "ctfmon"
]


class StartupManager:
    def __init__(self, estimated_delay_ms: int = 1500) -> None:
        self.logger = Logger()
        self.estimated_delay_ms = estimated_delay_ms

    @staticmethod
    def _is_enabled(flag: object) -> bool:
        if isinstance(flag, (bytes, bytearray)) and flag:
            return flag[0] % 2 == 0
        return True

    def _programs(self) -> List[StartupProgram]:
        programs = []
        for hive_name, hive in monitored_hives().items():
            approved = read_values(hive, APPROVED_KEY)
            for name, command in read_values(hive, RUN_KEY).items():
                programs.append(StartupProgram(
                    id=f"{hive_name}\\{RUN_KEY}\\{name}",
                    name=name,
                    command=str(command),
                    location=f"{hive_name}\\{RUN_KEY}",
                    is_enabled=self._is_enabled(approved.get(name)),
                    estimated_delay_ms=self.estimated_delay_ms,
                ))
        return programs

    @staticmethod
    def is_essential(program: StartupProgram) -> bool:
        text = f"{program.name} {program.command}".lower()
        return any(k in text for k in ESSENTIAL_KEYWORDS)

    def boot_impact(self, programs: List[StartupProgram]) -> BootImpact:
        recommendations = [
            StartupRecommendation(
                program=p,
                reason=f"{p.name} is not required at boot and delays startup",
                estimated_time_saving_ms=p.estimated_delay_ms,
            )
            for p in programs if p.is_enabled and not self.is_essential(p)
        ]
        total_ms = sum(r.estimated_time_saving_ms for r in recommendations)
        return BootImpact(total_saving_seconds=total_ms / 1000, recommendations=recommendations)

    def _set_enabled(self, program: StartupProgram, enabled: bool) -> bool:
        if sys.platform != "win32":
            self.logger.warning("Startup programs can only be changed on Windows")
            return False

        hive_name = program.location.partition("\\")[0]
        hive = monitored_hives().get(hive_name)
        if hive is None:
            return False
        try:
            with winreg.CreateKeyEx(hive, APPROVED_KEY, 0, winreg.KEY_SET_VALUE) as key_handle:
                winreg.SetValueEx(key_handle, program.name, 0, winreg.REG_BINARY,
                                  ENABLED_FLAG if enabled else DISABLED_FLAG)
        except OSError as e:
            self.logger.error(f"Could not update startup entry {program.name}: {e}")
            return False

        self.logger.info(f"Startup entry {program.name} {'enabled' if enabled else 'disabled'}")
        return True

    async def list_startup_programs(self) -> List[StartupProgram]:
        return await asyncio.to_thread(self._programs)

    async def set_startup_enabled(self, program: StartupProgram, enabled: bool) -> bool:
        return await asyncio.to_thread(self._set_enabled, program, enabled)

    async def analyze_boot_impact(self) -> BootImpact:
        return self.boot_impact(await self.list_startup_programs())
