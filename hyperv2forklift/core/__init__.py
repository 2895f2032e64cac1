# hyperv2forklift/core/__init__.py
from .exceptions import (
    ClusterError,
    DescriptorError,
    Fatal,
    Hyperv2ForkliftError,
    MappingError,
    MigrationFailedError,
    MigrationTimeoutError,
)
from .logger import Log

__all__ = [
    "ClusterError",
    "DescriptorError",
    "Fatal",
    "Hyperv2ForkliftError",
    "Log",
    "MappingError",
    "MigrationFailedError",
    "MigrationTimeoutError",
]
