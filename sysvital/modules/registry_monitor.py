"""
Windows Registry Inspector - Orphaned Startup Entries

Scans HKLM and HKCU Run keys for auto-launch entries whose executable no
longer exists on disk. Fixing an issue deletes the orphaned value.

Targets:
- HKEY_LOCAL_MACHINE\\Software\\Microsoft\\Windows\\CurrentVersion\\Run
- HKEY_CURRENT_USER\\Software\\Microsoft\\Windows\\CurrentVersion\\Run

Off Windows the scan is always empty and fixes are refused.
"""
import asyncio
import os
import shlex
import sys
from typing import Dict, List, Tuple

from sysvital.core.schemas import RegistryFixResult, RegistryIssue, RegistryScan
from sysvital.utils.logger import Logger

if sys.platform == "win32":
    import winreg

RUN_KEY = r"Software\Microsoft\Windows\CurrentVersion\Run"


def monitored_hives() -> Dict[str, int]:
    """Short hive names mapped to winreg handles (empty off Windows)."""
    if sys.platform != "win32":
        return {}
    return {"HKCU": winreg.HKEY_CURRENT_USER, "HKLM": winreg.HKEY_LOCAL_MACHINE}


def read_values(hive: int, subkey: str) -> Dict[str, object]:
    """Enumerates all value entries of a key. Missing or denied keys read as empty."""
    values = {}
    try:
        with winreg.OpenKey(hive, subkey, 0, winreg.KEY_READ) as key_handle:
            i = 0
            while True:
                try:
                    name, data, _ = winreg.EnumValue(key_handle, i)
                    values[name] = data
                    i += 1
                except OSError:
                    break
    except (PermissionError, FileNotFoundError):
        pass
    return values


def executable_from_command(command: str) -> str:
    """Extracts the executable path from a Run-key command line."""
    command = os.path.expandvars(command.strip())
    if not command:
        return ""
    if command.startswith('"'):
        end = command.find('"', 1)
        return command[1:end] if end > 0 else command[1:]

    # Rutas sin comillas con espacios: cortar tras la extensión
    lowered = command.lower()
    for ext in (".exe", ".bat", ".cmd", ".com"):
        idx = lowered.find(ext)
        if idx > 0:
            return command[:idx + len(ext)]
    try:
        return shlex.split(command, posix=False)[0]
    except ValueError:
        return command.split()[0]


class RegistryMonitor:
    def __init__(self) -> None:
        self.logger = Logger()

    def _orphaned_entries(self) -> List[RegistryIssue]:
        issues = []
        for hive_name, hive in monitored_hives().items():
            for name, data in read_values(hive, RUN_KEY).items():
                exe = executable_from_command(str(data))
                # Rutas relativas (p.ej. "rundll32.exe") se resuelven vía PATH
                if not exe or not os.path.isabs(exe) or os.path.exists(exe):
                    continue
                key_path = f"{hive_name}\\{RUN_KEY}"
                issues.append(RegistryIssue(
                    id=f"{key_path}\\{name}",
                    key_path=key_path,
                    value_name=name,
                    description=f"Startup entry points to missing file: {exe}",
                    severity="Medium",
                ))
        return issues

    def _scan(self) -> RegistryScan:
        issues = self._orphaned_entries()
        self.logger.info(f"RegistryMonitor: {len(issues)} orphaned entries found.")
        return RegistryScan(issue_count=len(issues), issues=issues)

    def _split_key_path(self, key_path: str) -> Tuple[int, str]:
        hive_name, _, subkey = key_path.partition("\\")
        return monitored_hives()[hive_name], subkey

    def _fix(self, issues: List[RegistryIssue]) -> RegistryFixResult:
        if sys.platform != "win32":
            return RegistryFixResult(fixed=0, failed=len(issues))

        fixed = 0
        failed = 0
        for issue in issues:
            try:
                hive, subkey = self._split_key_path(issue.key_path)
                with winreg.OpenKey(hive, subkey, 0, winreg.KEY_SET_VALUE) as key_handle:
                    winreg.DeleteValue(key_handle, issue.value_name)
                fixed += 1
                self.logger.info(f"Removed orphaned entry {issue.id}")
            except (KeyError, OSError) as e:
                failed += 1
                self.logger.warning(f"Could not remove {issue.id}: {e}")
        return RegistryFixResult(fixed=fixed, failed=failed)

    async def scan_registry(self) -> RegistryScan:
        return await asyncio.to_thread(self._scan)

    async def fix_registry_issues(self, issues: List[RegistryIssue]) -> RegistryFixResult:
        return await asyncio.to_thread(self._fix, issues)
