# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# hyperv2forklift/__init__.py
"""
hyperv2forklift - Hyper-V VM records to Forklift (MTV) OVA migrations

Turns `Get-VM | ConvertTo-Json` output into OVF descriptors, derives the
inventory ids the Forklift OVA provider assigns, writes the NetworkMap /
StorageMap / Plan / Migration documents and follows the migration.

Usage as a library:

    from hyperv2forklift import VMRecord, compile_descriptor, write_descriptor

    vm = VMRecord.from_json(raw)
    descriptor = compile_descriptor(vm, Path("disks"))
    write_descriptor(descriptor, Path("out") / f"{vm.name}.ovf")
"""

__version__ = "0.1.0"

from .forklift import IdentifierGenerators, MigrationMonitor, derive_id
from .ovf import VMRecord, compile_descriptor, read_descriptor, render_descriptor, write_descriptor

__all__ = [
    "__version__",
    "IdentifierGenerators",
    "MigrationMonitor",
    "VMRecord",
    "compile_descriptor",
    "derive_id",
    "read_descriptor",
    "render_descriptor",
    "write_descriptor",
]
