"""
Default inspectors backed by psutil and winreg.
"""
from sysvital.core.config import Config
from sysvital.core.interfaces import Inspectors
from sysvital.modules.disk_monitor import DiskCleaner
from sysvital.modules.hardware_monitor import HardwareMonitor
from sysvital.modules.network_monitor import NetworkMonitor
from sysvital.modules.os_inspector import OSMonitor
from sysvital.modules.process_monitor import ProcessMonitor
from sysvital.modules.registry_monitor import RegistryMonitor
from sysvital.modules.service_optimizer import ServiceOptimizer
from sysvital.modules.startup_manager import StartupManager


def build_default_inspectors(config: Config) -> Inspectors:
    return Inspectors(
        hardware=HardwareMonitor(),
        process=ProcessMonitor(),
        network=NetworkMonitor(),
        os=OSMonitor(),
        disk=DiskCleaner(min_age_hours=config.cleanup_min_age_hours),
        registry=RegistryMonitor(),
        startup=StartupManager(estimated_delay_ms=config.startup_delay_ms),
        service=ServiceOptimizer(),
    )
