# hyperv2forklift/ovf/__init__.py
from .compiler import compile_descriptor, stat_disk_size
from .model import Descriptor, VMRecord
from .reader import OvfSummary, read_descriptor
from .writer import render_descriptor, write_descriptor

__all__ = [
    "Descriptor",
    "OvfSummary",
    "VMRecord",
    "compile_descriptor",
    "read_descriptor",
    "render_descriptor",
    "stat_disk_size",
    "write_descriptor",
]
