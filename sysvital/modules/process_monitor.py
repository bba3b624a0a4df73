"""
SysVital - Process Inspector
psutil-backed process snapshots and resource usage.
"""
import asyncio
import sys
import time
from typing import Iterable, List

import psutil

from sysvital.core.active_response import kill_process_by_pid
from sysvital.core.schemas import ProcessSnapshot, ResourceUsage

# psutil devuelve 0.0 en la primera lectura de CPU
CPU_SAMPLE_SECONDS = 0.3


def _prime_cpu_percent(processes: Iterable[psutil.Process]) -> None:
    for proc in processes:
        try:
            proc.cpu_percent(None)
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            continue
    time.sleep(CPU_SAMPLE_SECONDS)


class ProcessMonitor:
    def __init__(self) -> None:
        self.kernel_processes = {
            "registry", "memcompression", "system", "secure system",
            "smss.exe", "idle", "system idle process"
        }
        self.attrs = ['pid', 'name', 'exe', 'memory_info']
        # num_handles solo existe en Windows
        if sys.platform == "win32":
            self.attrs.append('num_handles')

    def _scan(self) -> List[ProcessSnapshot]:
        processes = list(psutil.process_iter(self.attrs))
        _prime_cpu_percent(processes)

        snapshots = []
        for proc in processes:
            try:
                info = proc.info
                name = info.get('name') or ""
                if not info['pid'] or name.lower() in self.kernel_processes:
                    continue

                mem = info.get('memory_info')
                snapshots.append(ProcessSnapshot(
                    pid=info['pid'],
                    name=name,
                    exe_path=info.get('exe') or "",
                    cpu_percent=proc.cpu_percent(None) or 0.0,
                    memory_bytes=mem.rss if mem else 0,
                    handle_count=info.get('num_handles') or 0,
                    # Sin verificación Authenticode: firma desconocida
                    is_signed=None,
                ))
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                continue
        return snapshots

    def _usage(self) -> ResourceUsage:
        return ResourceUsage(
            cpu_percent=psutil.cpu_percent(interval=CPU_SAMPLE_SECONDS),
            memory_percent=psutil.virtual_memory().percent,
            process_count=len(psutil.pids()),
        )

    async def collect_processes(self) -> List[ProcessSnapshot]:
        return await asyncio.to_thread(self._scan)

    async def collect_resource_usage(self) -> ResourceUsage:
        return await asyncio.to_thread(self._usage)

    async def terminate_process(self, pid: int) -> bool:
        return await asyncio.to_thread(kill_process_by_pid, pid)
