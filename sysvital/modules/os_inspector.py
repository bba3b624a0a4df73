"""
SysVital - OS Inspector
Operating system identity and per-user registry tweaks (HKCU only, no admin needed).
"""
import asyncio
import platform
import sys
import time
from typing import List, Tuple

import psutil

from sysvital.core.schemas import OSSnapshot, OSTweak, TweakImpact
from sysvital.utils.logger import Logger

if sys.platform == "win32":
    import winreg

# (tweak, subkey HKCU, value name, value type, target value)
TWEAKS: List[Tuple[OSTweak, str, str, str, object]] = [
    (
        OSTweak(id="disable_advertising_id", name="Disable Advertising ID",
                description="Stop apps from using the advertising identifier",
                category="Privacy", impact=TweakImpact.LOW),
        r"Software\Microsoft\Windows\CurrentVersion\AdvertisingInfo", "Enabled", "dword", 0,
    ),
    (
        OSTweak(id="disable_transparency", name="Disable Transparency Effects",
                description="Turn off window transparency to reduce GPU load",
                category="Performance", impact=TweakImpact.LOW),
        r"Software\Microsoft\Windows\CurrentVersion\Themes\Personalize", "EnableTransparency", "dword", 0,
    ),
    (
        OSTweak(id="reduce_menu_delay", name="Reduce Menu Show Delay",
                description="Open menus faster (100 ms instead of 400 ms)",
                category="Performance", impact=TweakImpact.MEDIUM),
        r"Control Panel\Desktop", "MenuShowDelay", "sz", "100",
    ),
]


class OSMonitor:
    def __init__(self) -> None:
        self.logger = Logger()

    def _identity(self) -> OSSnapshot:
        return OSSnapshot(
            name=platform.system() or "Unknown",
            version=platform.release(),
            build=platform.version(),
            architecture=platform.machine(),
            uptime_seconds=int(time.time() - psutil.boot_time()),
        )

    def _read(self, subkey: str, value_name: str) -> object:
        try:
            with winreg.OpenKey(winreg.HKEY_CURRENT_USER, subkey, 0, winreg.KEY_READ) as key_handle:
                return winreg.QueryValueEx(key_handle, value_name)[0]
        except OSError:
            return None

    def _pending_tweaks(self) -> List[OSTweak]:
        if sys.platform != "win32":
            return []
        return [tweak for tweak, subkey, value_name, _, target in TWEAKS
                if str(self._read(subkey, value_name)) != str(target)]

    def _apply(self, tweak_id: str) -> bool:
        entry = next((t for t in TWEAKS if t[0].id == tweak_id), None)
        if entry is None:
            self.logger.warning(f"Unknown OS tweak: {tweak_id}")
            return False
        if sys.platform != "win32":
            self.logger.warning("OS tweaks are only available on Windows")
            return False

        tweak, subkey, value_name, kind, target = entry
        value_type = winreg.REG_DWORD if kind == "dword" else winreg.REG_SZ
        try:
            with winreg.CreateKeyEx(winreg.HKEY_CURRENT_USER, subkey, 0, winreg.KEY_SET_VALUE) as key_handle:
                winreg.SetValueEx(key_handle, value_name, 0, value_type, target)
        except OSError as e:
            self.logger.error(f"Could not apply {tweak.name}: {e}")
            return False

        self.logger.info(f"Applied OS tweak: {tweak.name}")
        return True

    async def collect_os(self) -> OSSnapshot:
        return await asyncio.to_thread(self._identity)

    async def list_os_tweaks(self) -> List[OSTweak]:
        return await asyncio.to_thread(self._pending_tweaks)

    async def apply_os_tweak(self, tweak_id: str) -> bool:
        return await asyncio.to_thread(self._apply, tweak_id)
