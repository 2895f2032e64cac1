# SPDX-License-Identifier: LGPL-3.0-or-later
# hyperv2forklift/forklift/mapping.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from ..core.exceptions import wrap_mapping
from ..ovf.compiler import DiskSizeResolver, stat_disk_size
from ..ovf.model import Descriptor
from ..ovf.reader import OvfFile, OvfSummary, read_descriptor
from .ids import (
    IdentifierGenerators,
    disk_object,
    fallback_network_id,
    fallback_storage_id,
    fallback_vm_id,
)

DEFAULT_SOURCE_NETWORK_NAME = "Network Adapter"
DEFAULT_NETWORK_TYPE = "pod"
DEFAULT_STORAGE_CLASS = "nfs-csi"

DescriptorLike = Union[Descriptor, OvfSummary, str, Path]


@dataclass(frozen=True)
class NetworkMapping:
    id: str
    name: str
    destination_type: str = DEFAULT_NETWORK_TYPE


@dataclass(frozen=True)
class StorageMapping:
    id: str
    destination_storage_class: str = DEFAULT_STORAGE_CLASS
    file_name: str = ""


def as_summary(descriptor: DescriptorLike, *, logger: Optional[logging.Logger] = None) -> OvfSummary:
    if isinstance(descriptor, OvfSummary):
        return descriptor
    if isinstance(descriptor, Descriptor):
        return OvfSummary.from_descriptor(descriptor)
    return read_descriptor(descriptor, logger=logger)


def discover_networks(
    descriptor: DescriptorLike,
    ids: IdentifierGenerators,
    destination_type: str = DEFAULT_NETWORK_TYPE,
    *,
    logger: Optional[logging.Logger] = None,
) -> List[NetworkMapping]:
    """
    One mapping per descriptor network, in descriptor order.

    A descriptor without networks still maps one default source network; Forklift
    rejects plans with an empty network map.
    """
    log = logger or logging.getLogger(__name__)
    summary = as_summary(descriptor, logger=log)

    out: List[NetworkMapping] = []
    for i, name in enumerate(summary.networks):
        nid = ids.network.identifier(name, name, i, fallback=lambda n=name: fallback_network_id(n))
        out.append(NetworkMapping(id=nid, name=name, destination_type=destination_type))
        log.info("Discovered network: %s -> %s", name, nid)

    if not out:
        default_id = ids.network.identifier(
            DEFAULT_SOURCE_NETWORK_NAME,
            DEFAULT_SOURCE_NETWORK_NAME,
            0,
            fallback=lambda: fallback_network_id(DEFAULT_SOURCE_NETWORK_NAME),
        )
        out.append(NetworkMapping(id=default_id, name=DEFAULT_SOURCE_NETWORK_NAME, destination_type=destination_type))
        log.warning("No networks found in OVF, using default network mapping (%s)", default_id)

    return out


def _local_size(path: Path, resolver: DiskSizeResolver) -> Optional[int]:
    try:
        return int(resolver(path))
    except (OSError, ValueError, TypeError):
        return None


def discover_storage(
    descriptor: DescriptorLike,
    disk_files: Sequence[Union[str, Path]],
    ids: IdentifierGenerators,
    storage_class: str = DEFAULT_STORAGE_CLASS,
    ovf_path: Optional[Union[str, Path]] = None,
    resolver: DiskSizeResolver = stat_disk_size,
    *,
    disk_dir: Optional[Union[str, Path]] = None,
    logger: Optional[logging.Logger] = None,
) -> List[StorageMapping]:
    """
    One mapping per disk file, in descriptor order.

    Disk entries come from the descriptor's References; each is sized from the
    matching file in `disk_dir` (default: the OVF's directory), falling back to the
    size recorded in the descriptor. Without References, `disk_files` is used.
    No disks at all is a MappingError.
    """
    log = logger or logging.getLogger(__name__)
    summary = as_summary(descriptor, logger=log)

    ovf = str(ovf_path if ovf_path is not None else (summary.path or "vm.ovf"))
    base_dir = Path(disk_dir) if disk_dir is not None else Path(ovf).parent

    entries: List[OvfFile] = list(summary.files)
    sized: List[Tuple[str, int]] = []
    if entries:
        for f in entries:
            size = _local_size(base_dir / f.href, resolver)
            if size is None:
                size = f.size or 0
            sized.append((f.href, size))
    else:
        for p in disk_files:
            p = Path(p)
            size = _local_size(p, resolver)
            sized.append((p.name, size or 0))

    if not sized:
        raise wrap_mapping(f"no disk files found for {summary.vm_name or ovf}", ovf=ovf)

    log.info("Discovering storage for %d disk files", len(sized))
    out: List[StorageMapping] = []
    for i, (name, size) in enumerate(sized):
        disk, key = disk_object(name, size, i, ovf)
        sid = ids.storage.identifier(disk, key, i, fallback=lambda n=name, idx=i: fallback_storage_id(n, idx))
        out.append(StorageMapping(id=sid, destination_storage_class=storage_class, file_name=name))
        log.info("  %s -> %s", name, sid)
    return out


def discover_vm_id(
    vm_name: str,
    ovf_path: Union[str, Path],
    ids: IdentifierGenerators,
    index: int = 0,
    *,
    logger: Optional[logging.Logger] = None,
) -> str:
    ovf = str(ovf_path)
    vid = ids.vm.identifier(vm_name, ovf, index, fallback=lambda: fallback_vm_id(vm_name, ovf))
    (logger or logging.getLogger(__name__)).info("VM id for %s: %s", vm_name, vid)
    return vid


def disk_files_in(directory: Union[str, Path], suffixes: Iterable[str] = (".raw",)) -> List[Path]:
    d = Path(directory)
    if not d.is_dir():
        return []
    sfx = tuple(s.lower() for s in suffixes)
    return sorted(p for p in d.iterdir() if p.is_file() and p.suffix.lower() in sfx)


__all__ = [
    "NetworkMapping",
    "StorageMapping",
    "as_summary",
    "discover_networks",
    "discover_storage",
    "discover_vm_id",
    "disk_files_in",
]
