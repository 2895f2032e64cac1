# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# hyperv2forklift/forklift/ids.py
"""
Deterministic identifiers for Forklift OVA inventory objects.

Forklift's OVA provider names each network/disk/VM it discovers by
sha256(gob(object))[:32]. Mapping documents generated here must carry the same
ids or the Plan references nothing. Parity of the derived ids with a live
provider has not been verified, so a confirmed-identifier pool (ids observed on a
working deployment, in discovery order) is consulted first and derivation only
covers what the pool does not.
"""
from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Protocol, Sequence, Tuple

from ..ovf.model import DISK_FORMAT_URI
from .gob import GobEncodeError, gob_encode, gob_field

ID_LENGTH = 32


# Observed-valid ids, first come first served. Replace once derived ids are
# confirmed against a live provider.
CONFIRMED_NETWORK_IDS: Tuple[str, ...] = (
    "d722072e029481b6ca769f17e8fc112a9f30",
)
CONFIRMED_STORAGE_IDS: Tuple[str, ...] = (
    "dfb1a980140def3d29d0cd69034f9662fc8d",
    "b1872fd235ad7692d87ca041ddb4a523aa82",
)
CONFIRMED_VM_IDS: Tuple[str, ...] = (
    "2d30892ae8876af8ece2ffbc88946cc6ced3",
)

NETWORK = "network"
STORAGE = "storage"
VM = "vm"

DEFAULT_POOLS: Dict[str, Tuple[str, ...]] = {
    NETWORK: CONFIRMED_NETWORK_IDS,
    STORAGE: CONFIRMED_STORAGE_IDS,
    VM: CONFIRMED_VM_IDS,
}


@dataclass(frozen=True)
class VmDisk:
    """Forklift's OVA disk model, field for field, as the gob encoder sees it."""
    __gob_name__ = "VmDisk"

    id: str = gob_field("ID", "string", default="")
    name: str = gob_field("Name", "string", default="")
    file_path: str = gob_field("FilePath", "string", default="")
    capacity: int = gob_field("Capacity", "int", default=0)
    capacity_allocation_units: str = gob_field("CapacityAllocationUnits", "string", default="")
    disk_id: str = gob_field("DiskId", "string", default="")
    file_ref: str = gob_field("FileRef", "string", default="")
    format: str = gob_field("Format", "string", default="")
    populated_size: int = gob_field("PopulatedSize", "int", default=0)


def _sha_hex(*parts: str) -> str:
    h = hashlib.sha256()
    for p in parts:
        h.update(p.encode("utf-8"))
    return h.hexdigest()[:ID_LENGTH]


def derive_id(obj: Any, key: str) -> str:
    """
    sha256(gob(obj)) as hex, first 32 chars.

    `key` mirrors Forklift's GetUUID(object, key) call shape and does not change
    the result. Raises GobEncodeError for objects outside the gob subset.
    """
    return hashlib.sha256(gob_encode(obj)).hexdigest()[:ID_LENGTH]


def disk_file_path(ovf_path: str) -> str:
    """Directory of the OVF path with its trailing '/', as Forklift's getDiskPath."""
    if ovf_path.endswith(".ovf"):
        i = ovf_path.rfind("/")
        if i > -1:
            return ovf_path[: i + 1]
    return ovf_path


def disk_object(file_name: str, size: int, index: int, ovf_path: str) -> Tuple[VmDisk, str]:
    """(VmDisk, key) for the disk at 0-based `index` of the descriptor."""
    disk = VmDisk(
        name=file_name,
        file_path=disk_file_path(ovf_path),
        capacity=size,
        capacity_allocation_units="byte",
        disk_id=f"vmdisk{index + 1}",
        file_ref=f"file{index + 1}",
        format=DISK_FORMAT_URI,
        populated_size=size,
    )
    return disk, f"{ovf_path}/{file_name}"


def fallback_network_id(name: str) -> str:
    return _sha_hex(name)


def fallback_storage_id(file_name: str, index: int) -> str:
    return _sha_hex(file_name, str(index), "fallback-storage")


def fallback_vm_id(vm_name: str, ovf_path: str) -> str:
    return _sha_hex(vm_name, ovf_path, "forklift-vm")


# --------------------------------------------------------------------------------------
# Strategies
# --------------------------------------------------------------------------------------

class IdentifierSource(Protocol):
    def identifier(self, obj: Any, key: str, index: int) -> Optional[str]:
        ...


class ConfirmedIdentifierPool:
    """Ordered ids handed out by discovery index; None once exhausted."""

    def __init__(self, ids: Iterable[str] = ()) -> None:
        self._ids: Tuple[str, ...] = tuple(str(x) for x in ids if x)

    def __len__(self) -> int:
        return len(self._ids)

    @property
    def ids(self) -> Tuple[str, ...]:
        return self._ids

    def identifier(self, obj: Any, key: str, index: int) -> Optional[str]:
        if 0 <= index < len(self._ids):
            return self._ids[index]
        return None


class DerivedIdentifier:
    def identifier(self, obj: Any, key: str, index: int) -> Optional[str]:
        return derive_id(obj, key)


class PooledIdentifierGenerator:
    """
    Pool first, derivation second.

    `fallback` is used only when the object cannot be gob-encoded.
    """

    def __init__(
        self,
        kind: str,
        pool: Optional[ConfirmedIdentifierPool] = None,
        derived: Optional[IdentifierSource] = None,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.kind = kind
        self.pool = pool if pool is not None else ConfirmedIdentifierPool()
        self.derived: IdentifierSource = derived if derived is not None else DerivedIdentifier()
        self.logger = logger or logging.getLogger(__name__)

    def identifier(
        self,
        obj: Any,
        key: str,
        index: int,
        *,
        fallback: Optional[Callable[[], str]] = None,
    ) -> str:
        pooled = self.pool.identifier(obj, key, index)
        if pooled is not None:
            self.logger.info("Using confirmed %s id #%d for %s: %s", self.kind, index + 1, key, pooled)
            return pooled

        self.logger.debug("No confirmed %s id #%d for %s, deriving", self.kind, index + 1, key)
        try:
            derived = self.derived.identifier(obj, key, index)
        except GobEncodeError as e:
            if fallback is None:
                raise
            self.logger.warning("Could not derive %s id for %s (%s), using fallback hash", self.kind, key, e)
            return fallback()
        if derived is None:
            if fallback is None:
                raise GobEncodeError(f"no identifier for {self.kind} {key}")
            return fallback()
        return derived


@dataclass(frozen=True)
class IdentifierGenerators:
    network: PooledIdentifierGenerator
    storage: PooledIdentifierGenerator
    vm: PooledIdentifierGenerator

    @classmethod
    def from_pools(
        cls,
        pools: Optional[Mapping[str, Sequence[str]]] = None,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> "IdentifierGenerators":
        """`pools=None` means the built-in pools; a missing kind means an empty pool."""
        p: Mapping[str, Sequence[str]] = DEFAULT_POOLS if pools is None else pools

        def gen(kind: str) -> PooledIdentifierGenerator:
            return PooledIdentifierGenerator(kind, ConfirmedIdentifierPool(p.get(kind, ())), logger=logger)

        return cls(network=gen(NETWORK), storage=gen(STORAGE), vm=gen(VM))

    @classmethod
    def derived_only(cls, *, logger: Optional[logging.Logger] = None) -> "IdentifierGenerators":
        return cls.from_pools({}, logger=logger)


__all__ = [
    "CONFIRMED_NETWORK_IDS",
    "CONFIRMED_STORAGE_IDS",
    "CONFIRMED_VM_IDS",
    "ConfirmedIdentifierPool",
    "DerivedIdentifier",
    "IdentifierGenerators",
    "IdentifierSource",
    "PooledIdentifierGenerator",
    "VmDisk",
    "derive_id",
    "disk_file_path",
    "disk_object",
    "fallback_network_id",
    "fallback_storage_id",
    "fallback_vm_id",
]
