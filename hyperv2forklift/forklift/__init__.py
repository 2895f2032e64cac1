# hyperv2forklift/forklift/__init__.py
from .ids import IdentifierGenerators, derive_id
from .mapping import NetworkMapping, StorageMapping, discover_networks, discover_storage, discover_vm_id
from .monitor import MigrationMonitor, MonitorResult, MonitorState, wait_for_plan_ready

__all__ = [
    "IdentifierGenerators",
    "MigrationMonitor",
    "MonitorResult",
    "MonitorState",
    "NetworkMapping",
    "StorageMapping",
    "derive_id",
    "discover_networks",
    "discover_storage",
    "discover_vm_id",
    "wait_for_plan_ready",
]
