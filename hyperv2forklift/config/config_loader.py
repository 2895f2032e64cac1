# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# hyperv2forklift/config/config_loader.py
from __future__ import annotations

import argparse
import glob
import json
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import yaml

from ..core.exceptions import Fatal

# env var -> config key
ENV_OVERRIDES: Tuple[Tuple[str, str], ...] = (
    ("NAMESPACE", "namespace"),
    ("OVA_PROVIDER_NFS_SERVER_PATH", "nfs_url"),
    ("STORAGE_CLASS", "storage_class"),
)

_DNS_LABEL_RE = re.compile(r"[^a-z0-9-]+")


def deep_merge(base: Dict[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """Dicts merge recursively; lists and scalars are replaced (override wins)."""
    out: Dict[str, Any] = dict(base)
    for k, v in override.items():
        if k in out and isinstance(out[k], dict) and isinstance(v, Mapping):
            out[k] = deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def dns_label(s: str, default: str = "vm") -> str:
    """Kubernetes object name component: lowercase [a-z0-9-], max 63."""
    out = _DNS_LABEL_RE.sub("-", (s or "").strip().lower()).strip("-")
    return out[:63].rstrip("-") or default


class Config:
    @staticmethod
    def expand_configs(logger: logging.Logger, paths: Sequence[str]) -> List[Path]:
        """Expand ~ and globs, keep order, drop duplicates. A path that matches nothing is fatal."""
        out: List[Path] = []
        seen = set()
        for raw in paths:
            pattern = os.path.expanduser(str(raw))
            matches = sorted(glob.glob(pattern)) if glob.has_magic(pattern) else [pattern]
            if not matches:
                raise Fatal(2, f"Config pattern matched nothing: {raw}")
            for m in matches:
                p = Path(m)
                key = str(p.resolve())
                if key in seen:
                    continue
                seen.add(key)
                out.append(p)
        logger.debug("Config files: %s", [str(p) for p in out])
        return out

    @staticmethod
    def load_one(logger: logging.Logger, path: Path) -> Dict[str, Any]:
        if not path.exists():
            raise Fatal(2, f"Config not found: {path}")
        try:
            text = path.read_text(encoding="utf-8")
            if path.suffix.lower() == ".json":
                data = json.loads(text)
            else:
                data = yaml.safe_load(text)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise Fatal(2, f"Failed to load config {path}: {e}") from e
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise Fatal(2, f"Config {path} must be a mapping at top level, got {type(data).__name__}")
        logger.debug("Loaded config %s (%d keys)", path, len(data))
        return data

    @staticmethod
    def load_many(logger: logging.Logger, paths: Sequence[Path]) -> Dict[str, Any]:
        conf: Dict[str, Any] = {}
        for p in paths:
            conf = deep_merge(conf, Config.load_one(logger, Path(p)))
        return conf

    @staticmethod
    def apply_env(conf: Mapping[str, Any], env: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
        """Environment overrides beat config files (CLI flags still beat both)."""
        e = os.environ if env is None else env
        out = dict(conf)
        for var, key in ENV_OVERRIDES:
            val = e.get(var)
            if val:
                out[key] = val
        return out

    @staticmethod
    def apply_as_defaults(logger: logging.Logger, parser: argparse.ArgumentParser, conf: Mapping[str, Any]) -> None:
        """Config keys that name an argparse dest become that option's default."""
        dests = {a.dest for a in parser._actions if a.dest and a.dest != argparse.SUPPRESS}
        known: Dict[str, Any] = {}
        for k, v in conf.items():
            key = str(k).replace("-", "_")
            if key in dests:
                known[key] = v
        unknown = sorted(str(k) for k in conf if str(k).replace("-", "_") not in dests)
        if unknown:
            logger.debug("Config keys without a CLI option (kept in config only): %s", unknown)
        parser.set_defaults(**known)


@dataclass(frozen=True)
class ResourceNames:
    provider: str
    secret: str
    network_map: str
    storage_map: str
    plan: str
    migration: str


@dataclass(frozen=True)
class MigrationSettings:
    namespace: str = ""
    nfs_url: str = ""
    provider_name: str = "ova-provider-test"
    secret_name: str = "ova-provider-lbmst"
    plan_name: str = "ovatohyper"
    migration_name: str = "hyperv-demo"
    destination_provider: str = "host"
    network_map_name: str = "ova-network-map"
    storage_map_name: str = "ova-storage-map"
    storage_class: str = "nfs-csi"
    network_type: str = "pod"
    target_namespace: str = ""
    insecure_skip_verify: bool = False
    poll_interval_s: float = 10.0
    migration_timeout_s: float = 15 * 60.0
    plan_timeout_s: float = 5 * 60.0
    kubectl_binary: str = "kubectl"
    # Directory under which the OVA provider sees the descriptors (NFS mount). Empty: local output path.
    provider_ovf_dir: str = ""
    # None: built-in confirmed pools. {}: derive every id.
    identifier_pools: Optional[Dict[str, Tuple[str, ...]]] = field(default=None)

    @classmethod
    def from_config(
        cls,
        conf: Mapping[str, Any],
        args: Optional[argparse.Namespace] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> "MigrationSettings":
        """
        Precedence: CLI value (when set) > environment > config file > default.
        """
        merged = Config.apply_env(conf, env)
        if args is not None:
            for k, v in vars(args).items():
                if v is not None:
                    merged[k] = v

        kwargs: Dict[str, Any] = {}
        for f in cls.__dataclass_fields__.values():
            if f.name in merged and merged[f.name] is not None:
                kwargs[f.name] = merged[f.name]

        for key in ("poll_interval_s", "migration_timeout_s", "plan_timeout_s"):
            if key in kwargs:
                try:
                    kwargs[key] = float(kwargs[key])
                except (TypeError, ValueError) as e:
                    raise Fatal(2, f"{key} must be a number, got {kwargs[key]!r}") from e

        if "insecure_skip_verify" in kwargs:
            v = kwargs["insecure_skip_verify"]
            kwargs["insecure_skip_verify"] = v if isinstance(v, bool) else str(v).lower() in ("1", "true", "yes")

        pools = kwargs.pop("identifier_pools", None)
        if pools is not None:
            if not isinstance(pools, Mapping):
                raise Fatal(2, f"identifier_pools must be a mapping, got {type(pools).__name__}")
            kwargs["identifier_pools"] = {str(k): tuple(str(x) for x in (v or ())) for k, v in pools.items()}
        if merged.get("no_confirmed_ids"):
            kwargs["identifier_pools"] = {}

        return cls(**{k: v for k, v in kwargs.items() if k in cls.__dataclass_fields__})

    def require_cluster(self) -> None:
        if not self.namespace:
            raise Fatal(2, "NAMESPACE environment variable not set (or --namespace / config `namespace`)")
        if not self.nfs_url:
            raise Fatal(2, "OVA_PROVIDER_NFS_SERVER_PATH environment variable not set (or --nfs-url / config `nfs_url`)")
        if self.poll_interval_s <= 0 or self.migration_timeout_s <= 0 or self.plan_timeout_s <= 0:
            raise Fatal(2, "poll interval and timeouts must be > 0")

    def names_for(self, vm_name: str, per_vm: bool) -> ResourceNames:
        """Provider and secret are shared; maps/plan/migration get a VM suffix in batch runs."""
        sfx = f"-{dns_label(vm_name)}" if per_vm else ""
        return ResourceNames(
            provider=self.provider_name,
            secret=self.secret_name,
            network_map=f"{self.network_map_name}{sfx}",
            storage_map=f"{self.storage_map_name}{sfx}",
            plan=f"{self.plan_name}{sfx}",
            migration=f"{self.migration_name}{sfx}",
        )


__all__ = [
    "Config",
    "MigrationSettings",
    "ResourceNames",
    "deep_merge",
    "dns_label",
]
