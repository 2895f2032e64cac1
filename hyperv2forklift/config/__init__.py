# hyperv2forklift/config/__init__.py
from .config_loader import Config, MigrationSettings, ResourceNames

__all__ = ["Config", "MigrationSettings", "ResourceNames"]
