"""
SysVital - Disk Inspector
Estimates reclaimable space in temporary directories and removes stale files.
"""
import asyncio
import os
import sys
import tempfile
import time
from typing import Iterator, List, Optional, Tuple

import psutil

from sysvital.core.schemas import CleanupCategory, CleanupResult, DiskAnalysis
from sysvital.utils.logger import Logger


class DiskCleaner:
    def __init__(self, min_age_hours: float = 24.0, temp_dirs: Optional[List[str]] = None) -> None:
        self.logger = Logger()
        self.min_age_seconds = min_age_hours * 3600
        self.temp_dirs = temp_dirs if temp_dirs is not None else self._default_temp_dirs()
        self.system_root = os.path.abspath(os.environ.get("SystemDrive", "") + os.sep)

    @staticmethod
    def _default_temp_dirs() -> List[str]:
        dirs = [tempfile.gettempdir()]
        if sys.platform == "win32":
            dirs.append(os.path.join(os.environ.get("WINDIR", r"C:\Windows"), "Temp"))
        # Sin duplicados, conservando el orden
        seen = []
        for d in dirs:
            path = os.path.normcase(os.path.abspath(d))
            if path not in seen and os.path.isdir(path):
                seen.append(path)
        return seen

    def _stale_files(self, root: str) -> Iterator[Tuple[str, int]]:
        cutoff = time.time() - self.min_age_seconds
        for dirpath, _, filenames in os.walk(root):
            for name in filenames:
                path = os.path.join(dirpath, name)
                try:
                    st = os.stat(path, follow_symlinks=False)
                except OSError:
                    continue
                if st.st_mtime < cutoff:
                    yield path, st.st_size

    def _analyze(self) -> DiskAnalysis:
        categories = []
        for root in self.temp_dirs:
            size = 0
            count = 0
            for _, file_size in self._stale_files(root):
                size += file_size
                count += 1
            categories.append(CleanupCategory(name=f"Temporary Files ({root})", size_bytes=size, file_count=count))

        return DiskAnalysis(
            usage_percent=psutil.disk_usage(self.system_root).percent,
            cleanable_bytes=sum(c.size_bytes for c in categories),
            categories=categories,
        )

    def _cleanup(self) -> CleanupResult:
        cleaned = 0
        errors: List[str] = []
        locked = 0
        for root in self.temp_dirs:
            if not os.access(root, os.W_OK):
                errors.append(f"No write access to {root}")
                continue
            for path, size in list(self._stale_files(root)):
                try:
                    os.remove(path)
                    cleaned += size
                except OSError:
                    # Archivos en uso: se omiten
                    locked += 1

        if locked:
            self.logger.info(f"Disk cleanup skipped {locked} file(s) in use")
        self.logger.info(f"Disk cleanup freed {cleaned} bytes")
        return CleanupResult(success=len(errors) < len(self.temp_dirs) or not self.temp_dirs,
                             bytes_cleaned=cleaned, errors=errors)

    async def analyze_disk(self) -> DiskAnalysis:
        return await asyncio.to_thread(self._analyze)

    async def run_disk_cleanup(self) -> CleanupResult:
        return await asyncio.to_thread(self._cleanup)
