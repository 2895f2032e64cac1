# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# hyperv2forklift/ovf/model.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Tuple, Union

from ..core.exceptions import DescriptorError
from .guest_os import parse_guest_os_info

MIB = 1024 * 1024

DEFAULT_VM_NAME = "VM"
DEFAULT_CPU_COUNT = 1
DEFAULT_MEMORY_MB = 1024

DISK_FORMAT_URI = "http://www.vmware.com/interfaces/specifications/vmdk.html#streamOptimized"
DISK_CAPACITY_UNITS = "byte"
HOST_RESOURCE_PREFIX = "ovf:/disk/"


def _as_int(v: Any) -> Optional[int]:
    # PowerShell JSON gives numbers as int or float; hand-written records may use strings.
    if isinstance(v, bool):
        return None
    if isinstance(v, int):
        return v
    if isinstance(v, float):
        return int(v)
    if isinstance(v, str):
        try:
            return int(float(v.strip()))
        except ValueError:
            return None
    return None


def _as_str(v: Any) -> str:
    return v if isinstance(v, str) else ""


# --------------------------------------------------------------------------------------
# VM record (input)
# --------------------------------------------------------------------------------------

@dataclass(frozen=True)
class HardDrive:
    path: str
    index: int  # position in the source HardDrives list


@dataclass(frozen=True)
class NetworkAdapter:
    name: str
    index: int  # position in the source NetworkAdapters list


@dataclass(frozen=True)
class GuestOSInfo:
    caption: str = ""
    version: str = ""
    architecture: str = ""

    @classmethod
    def from_json(cls, data: Any) -> "GuestOSInfo":
        d = parse_guest_os_info(data)
        return cls(
            caption=_as_str(d.get("Caption")),
            version=_as_str(d.get("Version")),
            architecture=_as_str(d.get("OSArchitecture")),
        )


@dataclass(frozen=True)
class VMRecord:
    name: str = DEFAULT_VM_NAME
    processor_count: int = DEFAULT_CPU_COUNT
    memory_startup: Optional[int] = None  # bytes
    hard_drives: Tuple[HardDrive, ...] = ()
    network_adapters: Tuple[NetworkAdapter, ...] = ()
    guest_os: Optional[GuestOSInfo] = None

    @property
    def memory_mb(self) -> int:
        if self.memory_startup is None:
            return DEFAULT_MEMORY_MB
        return self.memory_startup // MIB

    def with_guest_os(self, guest_os: GuestOSInfo) -> "VMRecord":
        return VMRecord(
            name=self.name,
            processor_count=self.processor_count,
            memory_startup=self.memory_startup,
            hard_drives=self.hard_drives,
            network_adapters=self.network_adapters,
            guest_os=guest_os,
        )

    @classmethod
    def from_json(cls, data: Any) -> "VMRecord":
        """
        Build a record from the `Get-VM | ConvertTo-Json` shape.

        Missing scalars fall back to defaults; list entries that are not objects
        are skipped but keep their position (it drives names and ids).
        """
        if not isinstance(data, Mapping):
            raise DescriptorError(code=20, msg=f"invalid VM format: expected object, got {type(data).__name__}")

        name = data.get("Name")
        cpus = _as_int(data.get("ProcessorCount"))
        mem = _as_int(data.get("MemoryStartup"))

        drives: List[HardDrive] = []
        raw_drives = data.get("HardDrives")
        if isinstance(raw_drives, list):
            for i, hd in enumerate(raw_drives):
                if isinstance(hd, Mapping):
                    drives.append(HardDrive(path=_as_str(hd.get("Path")), index=i))

        adapters: List[NetworkAdapter] = []
        raw_adapters = data.get("NetworkAdapters")
        if isinstance(raw_adapters, list):
            for i, na in enumerate(raw_adapters):
                if isinstance(na, Mapping):
                    adapters.append(NetworkAdapter(name=_as_str(na.get("Name")), index=i))

        guest: Optional[GuestOSInfo] = None
        raw_guest = data.get("GuestOSInfo")
        if raw_guest is not None:
            try:
                guest = GuestOSInfo.from_json(raw_guest)
            except ValueError:
                guest = None

        return cls(
            name=name if isinstance(name, str) else DEFAULT_VM_NAME,
            processor_count=cpus if cpus is not None and cpus >= 1 else DEFAULT_CPU_COUNT,
            memory_startup=mem if mem is not None and mem >= 0 else None,
            hard_drives=tuple(drives),
            network_adapters=tuple(adapters),
            guest_os=guest,
        )


# --------------------------------------------------------------------------------------
# Descriptor document (output)
# --------------------------------------------------------------------------------------

@dataclass(frozen=True)
class FileRef:
    id: str
    href: str
    size: int


@dataclass(frozen=True)
class Disk:
    capacity: int
    disk_id: str
    file_ref: str
    capacity_units: str = DISK_CAPACITY_UNITS
    format: str = DISK_FORMAT_URI


@dataclass(frozen=True)
class Network:
    name: str
    description: str


@dataclass(frozen=True)
class OperatingSystem:
    id: int
    os_type: str
    description: str
    info: str = "The operating system installed"


def _check_instance_id(instance_id: int) -> None:
    if not isinstance(instance_id, int) or instance_id < 1:
        raise ValueError(f"instance_id must be a positive int, got: {instance_id!r}")


@dataclass(frozen=True)
class CpuItem:
    instance_id: int
    quantity: int

    resource_type = 3

    def __post_init__(self) -> None:
        _check_instance_id(self.instance_id)
        if self.quantity < 1:
            raise ValueError(f"virtual CPU count must be >= 1, got: {self.quantity}")

    @property
    def element_name(self) -> str:
        return f"{self.quantity} virtual CPU(s)"


@dataclass(frozen=True)
class MemoryItem:
    instance_id: int
    quantity_mb: int

    resource_type = 4
    allocation_units = "byte * 2^20"

    def __post_init__(self) -> None:
        _check_instance_id(self.instance_id)
        if self.quantity_mb < 0:
            raise ValueError(f"memory must be >= 0 MB, got: {self.quantity_mb}")

    @property
    def element_name(self) -> str:
        return f"{self.quantity_mb}MB of memory"


@dataclass(frozen=True)
class IdeControllerItem:
    instance_id: int
    address: int = 0

    resource_type = 5

    def __post_init__(self) -> None:
        _check_instance_id(self.instance_id)

    @property
    def element_name(self) -> str:
        return f"VirtualIDEController {self.address}"


@dataclass(frozen=True)
class DiskItem:
    instance_id: int
    disk_id: str
    parent: int
    address_on_parent: int
    number: int  # 1-based, for the element name

    resource_type = 17

    def __post_init__(self) -> None:
        _check_instance_id(self.instance_id)
        _check_instance_id(self.parent)
        if not self.disk_id:
            raise ValueError("disk item needs a disk id")

    @property
    def host_resource(self) -> str:
        return f"{HOST_RESOURCE_PREFIX}{self.disk_id}"

    @property
    def element_name(self) -> str:
        return f"Hard Disk {self.number}"


@dataclass(frozen=True)
class EthernetItem:
    instance_id: int
    connection: str
    number: int  # 1-based, for the element name

    resource_type = 10
    resource_subtype = "E1000"
    automatic_allocation = True

    def __post_init__(self) -> None:
        _check_instance_id(self.instance_id)
        if not self.connection:
            raise ValueError("ethernet item needs a network connection")

    @property
    def element_name(self) -> str:
        return f"Ethernet {self.number}"

    @property
    def description(self) -> str:
        return f'E1000 ethernet adapter on "{self.connection}"'


HardwareItem = Union[CpuItem, MemoryItem, IdeControllerItem, DiskItem, EthernetItem]


@dataclass(frozen=True)
class VirtualSystem:
    id: str
    name: str
    operating_system: OperatingSystem
    items: Tuple[HardwareItem, ...]
    system_type: str = "vmx-07"


@dataclass(frozen=True)
class Descriptor:
    files: Tuple[FileRef, ...]
    disks: Tuple[Disk, ...]
    networks: Tuple[Network, ...]
    system: VirtualSystem

    def validate(self) -> None:
        """Cross-reference checks between sections. Raises DescriptorError."""
        file_ids = [f.id for f in self.files]
        for d in self.disks:
            if file_ids.count(d.file_ref) != 1:
                raise DescriptorError(code=20, msg=f"disk {d.disk_id} references unknown file {d.file_ref}")

        disk_ids = {d.disk_id for d in self.disks}
        controllers = {it.instance_id for it in self.system.items if isinstance(it, IdeControllerItem)}
        seen: List[int] = []
        for it in self.system.items:
            seen.append(it.instance_id)
            if isinstance(it, DiskItem):
                if it.disk_id not in disk_ids:
                    raise DescriptorError(code=20, msg=f"disk drive item {it.instance_id} references unknown disk {it.disk_id}")
                if it.parent not in controllers:
                    raise DescriptorError(code=20, msg=f"disk drive item {it.instance_id} has no IDE controller {it.parent}")
        if seen != list(range(1, len(seen) + 1)):
            raise DescriptorError(code=20, msg=f"instance ids are not 1..N in order: {seen}")

    @property
    def network_names(self) -> List[str]:
        return [n.name for n in self.networks]


__all__ = [
    "CpuItem",
    "Descriptor",
    "Disk",
    "DiskItem",
    "EthernetItem",
    "FileRef",
    "GuestOSInfo",
    "HardDrive",
    "HardwareItem",
    "IdeControllerItem",
    "MemoryItem",
    "Network",
    "NetworkAdapter",
    "OperatingSystem",
    "VMRecord",
    "VirtualSystem",
]
