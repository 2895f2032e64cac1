# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# hyperv2forklift/ovf/compiler.py
"""
VM record -> OVF descriptor tree.

The compiler is pure apart from the disk-size resolver: every hard drive must
already be staged as `<basename>.raw` in the disk directory, and a drive whose raw
file cannot be resolved fails the whole compile.
"""
from __future__ import annotations

import logging
import os
import posixpath
from pathlib import Path
from typing import Callable, List, Optional, Union

from ..core.exceptions import wrap_descriptor
from . import guest_os
from .model import (
    CpuItem,
    Descriptor,
    Disk,
    DiskItem,
    EthernetItem,
    FileRef,
    HardwareItem,
    IdeControllerItem,
    MemoryItem,
    Network,
    OperatingSystem,
    VMRecord,
    VirtualSystem,
)

DiskSizeResolver = Callable[[Path], int]

RAW_SUFFIX = ".raw"


def stat_disk_size(path: Path) -> int:
    """Default resolver: local filesystem size. Raises OSError when absent."""
    return os.stat(path).st_size


def raw_file_name(source_path: str) -> str:
    r"""
    `C:\VMs\disk1.vhdx` -> `disk1.raw`. Either separator style is accepted.
    """
    base = posixpath.basename((source_path or "").replace("\\", "/"))
    stem, _ext = posixpath.splitext(base)
    return stem + RAW_SUFFIX


def default_network_name(index: int) -> str:
    return f"VM Network {index + 1}"


def compile_descriptor(
    vm: VMRecord,
    disk_dir: Union[str, Path],
    resolver: DiskSizeResolver = stat_disk_size,
    *,
    logger: Optional[logging.Logger] = None,
) -> Descriptor:
    log = logger or logging.getLogger(__name__)
    disk_dir = Path(disk_dir)

    items: List[HardwareItem] = []
    files: List[FileRef] = []
    disks: List[Disk] = []
    networks: List[Network] = []

    next_id = 1
    items.append(CpuItem(instance_id=next_id, quantity=vm.processor_count))
    next_id += 1
    items.append(MemoryItem(instance_id=next_id, quantity_mb=vm.memory_mb))
    next_id += 1
    controller_id = next_id
    items.append(IdeControllerItem(instance_id=controller_id, address=0))
    next_id += 1

    for hd in vm.hard_drives:
        n = hd.index + 1
        file_id = f"file{n}"
        disk_id = f"vmdisk{n}"
        name = raw_file_name(hd.path)
        raw_path = disk_dir / name
        try:
            size = int(resolver(raw_path))
        except (OSError, ValueError, TypeError) as e:
            raise wrap_descriptor(
                f"failed to get size of raw disk file {raw_path}: {e}", e, vm=vm.name, source=hd.path
            ) from e
        log.debug("disk %s: %s -> %s (%d bytes)", disk_id, hd.path, raw_path, size)

        files.append(FileRef(id=file_id, href=name, size=size))
        disks.append(Disk(capacity=size, disk_id=disk_id, file_ref=file_id))
        items.append(
            DiskItem(
                instance_id=next_id,
                disk_id=disk_id,
                parent=controller_id,
                address_on_parent=hd.index,
                number=n,
            )
        )
        next_id += 1

    for na in vm.network_adapters:
        n = na.index + 1
        net_name = na.name or default_network_name(na.index)
        networks.append(Network(name=net_name, description=f"Network interface {n}"))
        items.append(EthernetItem(instance_id=next_id, connection=net_name, number=n))
        next_id += 1

    caption = vm.guest_os.caption if vm.guest_os else ""
    arch = vm.guest_os.architecture if vm.guest_os else ""
    os_type = guest_os.classify(caption, arch)
    operating_system = OperatingSystem(
        id=guest_os.os_family_id(os_type),
        os_type=os_type,
        description=guest_os.describe(caption, arch),
    )
    log.debug("guest OS %r (%s) -> %s", caption, arch, os_type)

    descriptor = Descriptor(
        files=tuple(files),
        disks=tuple(disks),
        networks=tuple(networks),
        system=VirtualSystem(
            id=vm.name,
            name=vm.name,
            operating_system=operating_system,
            items=tuple(items),
        ),
    )
    descriptor.validate()
    return descriptor


__all__ = [
    "DiskSizeResolver",
    "compile_descriptor",
    "default_network_name",
    "raw_file_name",
    "stat_disk_size",
]
