# tests/test_modules.py
import os
import socket
import sys
import time
from collections import namedtuple
from unittest.mock import MagicMock, patch

import psutil
import pytest

from sysvital.core.schemas import ConnectionSnapshot, ServiceOptimization, StartupProgram
from sysvital.modules import build_default_inspectors
from sysvital.modules.disk_monitor import DiskCleaner
from sysvital.modules.network_monitor import NetworkMonitor
from sysvital.modules.process_monitor import ProcessMonitor
from sysvital.modules.registry_monitor import RegistryMonitor, executable_from_command
from sysvital.modules.service_optimizer import ServiceOptimizer
from sysvital.modules.startup_manager import StartupManager

addr = namedtuple("addr", ["ip", "port"])
sconn = namedtuple("sconn", ["fd", "family", "type", "laddr", "raddr", "status", "pid"])

not_windows = pytest.mark.skipif(sys.platform == "win32", reason="checks behaviour off Windows")


# --- REGISTRO / INICIO ---
@pytest.mark.parametrize("command, expected", [
    ('"C:\\Program Files\\App\\app.exe" --tray', "C:\\Program Files\\App\\app.exe"),
    ("C:\\Program Files\\App\\app.exe /background", "C:\\Program Files\\App\\app.exe"),
    ("rundll32.exe shell32.dll,Control_RunDLL", "rundll32.exe"),
    ("", ""),
])
def test_executable_from_command(command, expected):
    assert executable_from_command(command) == expected


def test_boot_impact_skips_essential_and_disabled():
    manager = StartupManager(estimated_delay_ms=1500)
    programs = [
        StartupProgram(id="1", name="Spotify", command="spotify.exe", estimated_delay_ms=1500),
        StartupProgram(id="2", name="SecurityHealth", command="SecurityHealthSystray.exe", estimated_delay_ms=1500),
        StartupProgram(id="3", name="Steam", command="steam.exe", is_enabled=False, estimated_delay_ms=1500),
        StartupProgram(id="4", name="Discord", command="Update.exe --processStart Discord.exe",
                       estimated_delay_ms=1500),
    ]

    impact = manager.boot_impact(programs)

    assert [r.program.name for r in impact.recommendations] == ["Spotify", "Discord"]
    assert impact.total_saving_seconds == 3.0


def test_startup_approved_flags():
    assert StartupManager._is_enabled(b"\x02" + b"\x00" * 11) is True
    assert StartupManager._is_enabled(b"\x03" + b"\x00" * 11) is False
    assert StartupManager._is_enabled(None) is True


@not_windows
@pytest.mark.asyncio
async def test_windows_only_inspectors_are_empty_elsewhere():
    assert (await RegistryMonitor().scan_registry()).issue_count == 0
    assert await StartupManager().list_startup_programs() == []
    assert await ServiceOptimizer().list_optimizable_services() == []

    fix = await RegistryMonitor().fix_registry_issues([])
    assert fix.success is True
    assert await StartupManager().set_startup_enabled(StartupProgram(id="x", name="x"), False) is False
    assert await ServiceOptimizer().apply_service_optimization(ServiceOptimization(service_name="Fax")) is False


# --- DISCO ---
@pytest.mark.asyncio
async def test_disk_cleaner_removes_only_stale_files(tmp_path):
    stale = tmp_path / "old.tmp"
    fresh = tmp_path / "new.tmp"
    stale.write_bytes(b"x" * 2048)
    fresh.write_bytes(b"y" * 1024)
    two_days_ago = time.time() - 48 * 3600
    os.utime(stale, (two_days_ago, two_days_ago))

    cleaner = DiskCleaner(min_age_hours=24, temp_dirs=[str(tmp_path)])

    analysis = await cleaner.analyze_disk()
    assert analysis.cleanable_bytes == 2048
    assert analysis.categories[0].file_count == 1

    result = await cleaner.run_disk_cleanup()
    assert result.success is True
    assert result.bytes_cleaned == 2048
    assert not stale.exists()
    assert fresh.exists()


# --- PROCESOS / RED ---
@pytest.mark.asyncio
async def test_process_monitor_builds_snapshots():
    proc = MagicMock()
    proc.info = {"pid": 321, "name": "python", "exe": "/usr/bin/python3", "memory_info": MagicMock(rss=4096)}
    # primera lectura 0.0, la segunda ya es real
    proc.cpu_percent.side_effect = [0.0, 92.5]
    idle = MagicMock()
    idle.info = {"pid": 0, "name": "System Idle Process", "exe": None, "memory_info": None}

    with patch("psutil.process_iter", return_value=[idle, proc]), \
            patch("sysvital.modules.process_monitor.time.sleep") as sleep:
        snapshots = await ProcessMonitor().collect_processes()

    sleep.assert_called_once()
    assert len(snapshots) == 1
    assert snapshots[0].pid == 321
    assert snapshots[0].cpu_percent == 92.5
    assert snapshots[0].memory_bytes == 4096
    assert snapshots[0].is_signed is None


@pytest.mark.asyncio
async def test_resource_usage_samples_cpu_over_an_interval():
    with patch("psutil.cpu_percent", return_value=64.0) as cpu, \
            patch("psutil.pids", return_value=[1, 2, 3]):
        usage = await ProcessMonitor().collect_resource_usage()

    assert usage.cpu_percent == 64.0
    assert usage.process_count == 3
    assert cpu.call_args.kwargs["interval"] > 0


@pytest.mark.asyncio
async def test_network_monitor_skips_loopback_and_listeners():
    conns = [
        sconn(-1, socket.AF_INET, socket.SOCK_STREAM, addr("10.0.0.2", 50000), addr("203.0.113.4", 4444),
              psutil.CONN_ESTABLISHED, 77),
        sconn(-1, socket.AF_INET, socket.SOCK_STREAM, addr("127.0.0.1", 50001), addr("127.0.0.1", 8080),
              psutil.CONN_ESTABLISHED, 78),
        sconn(-1, socket.AF_INET, socket.SOCK_STREAM, addr("0.0.0.0", 80), (), psutil.CONN_LISTEN, 79),
    ]
    with patch("psutil.net_connections", return_value=conns), \
            patch("psutil.Process") as MockProcess:
        MockProcess.return_value.name.return_value = "beacon.exe"
        snapshot = await NetworkMonitor().collect_connections()

    assert len(snapshot) == 1
    assert snapshot[0].process_name == "beacon.exe"
    assert snapshot[0].remote_port == 4444
    assert snapshot[0].protocol == "TCP"


@pytest.mark.asyncio
async def test_block_connection_kills_owner():
    with patch("sysvital.modules.network_monitor.kill_process_by_pid", return_value=True) as kill:
        ok = await NetworkMonitor().block_connection(ConnectionSnapshot(pid=77, remote_ip="203.0.113.4"))
    assert ok is True
    kill.assert_called_once_with(77)


@pytest.mark.asyncio
async def test_block_connection_without_owner_fails():
    assert await NetworkMonitor().block_connection(ConnectionSnapshot(pid=0)) is False


def test_default_inspectors_follow_config():
    config = MagicMock(cleanup_min_age_hours=12, startup_delay_ms=900)
    inspectors = build_default_inspectors(config)

    assert inspectors.disk.min_age_seconds == 12 * 3600
    assert inspectors.startup.estimated_delay_ms == 900
