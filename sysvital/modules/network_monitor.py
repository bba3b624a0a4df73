import asyncio
import socket
from typing import List

import psutil

from sysvital.core.active_response import kill_process_by_pid
from sysvital.core.schemas import ConnectionSnapshot
from sysvital.utils.logger import Logger

LOOPBACK = {"127.0.0.1", "::1", "0.0.0.0"}


class NetworkMonitor:
    """
    Snapshot of established outbound connections.
    Blocking a connection terminates its owning process.
    """
    def __init__(self) -> None:
        self.logger = Logger()

    def _process_name(self, pid: int) -> str:
        if not pid:
            return ""
        try:
            return psutil.Process(pid).name()
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            return "Unknown"

    def get_network_snapshot(self) -> List[ConnectionSnapshot]:
        snapshot = []
        for conn in psutil.net_connections(kind='inet'):
            if conn.status != psutil.CONN_ESTABLISHED or not conn.raddr:
                continue
            # Ignorar loopback
            if conn.raddr.ip in LOOPBACK:
                continue

            pid = conn.pid or 0
            snapshot.append(ConnectionSnapshot(
                process_name=self._process_name(pid),
                pid=pid,
                local_ip=conn.laddr.ip if conn.laddr else "",
                local_port=conn.laddr.port if conn.laddr else 0,
                remote_ip=conn.raddr.ip,
                remote_port=conn.raddr.port,
                protocol="TCP" if conn.type == socket.SOCK_STREAM else "UDP",
                state=conn.status,
            ))
        return snapshot

    async def collect_connections(self) -> List[ConnectionSnapshot]:
        return await asyncio.to_thread(self.get_network_snapshot)

    async def block_connection(self, conn: ConnectionSnapshot) -> bool:
        if not conn.pid:
            self.logger.warning(f"Cannot block {conn.identity}: owning process unknown")
            return False
        self.logger.warning(f"Blocking connection {conn.identity}")
        return await asyncio.to_thread(kill_process_by_pid, conn.pid)
