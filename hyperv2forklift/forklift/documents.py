# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# hyperv2forklift/forklift/documents.py
"""
Forklift custom resources as plain dicts, and a YAML writer for them.

Builders return dicts in the key order Forklift's own examples use; the writer
keeps that order (sort_keys=False).
"""
from __future__ import annotations

import base64
from pathlib import Path
from typing import Any, Dict, Sequence, Tuple, Union

import yaml

from .mapping import NetworkMapping, StorageMapping

FORKLIFT_API = "forklift.konveyor.io/v1beta1"
CORE_API = "v1"

Doc = Dict[str, Any]


def _meta(name: str, namespace: str) -> Dict[str, Any]:
    return {"name": name, "namespace": namespace}


def _b64(s: str) -> str:
    return base64.b64encode(s.encode("utf-8")).decode("ascii")


def _provider_pair(source: str, destination: str, namespace: str) -> Dict[str, Any]:
    return {
        "source": {"name": source, "namespace": namespace},
        "destination": {"name": destination, "namespace": namespace},
    }


def _ref(kind: str, name: str, namespace: str) -> Dict[str, Any]:
    return {"apiVersion": FORKLIFT_API, "kind": kind, "name": name, "namespace": namespace}


def secret_document(name: str, namespace: str, url: str, insecure_skip_verify: bool = False) -> Doc:
    """OVA provider secret; values are base64 as the Secret `data` field requires."""
    return {
        "apiVersion": CORE_API,
        "kind": "Secret",
        "metadata": {
            **_meta(name, namespace),
            "labels": {
                "createdForProviderType": "ova",
                "createdForResourceType": "providers",
            },
        },
        "type": "Opaque",
        "data": {
            "url": _b64(url),
            "insecureSkipVerify": _b64("true" if insecure_skip_verify else "false"),
        },
    }


def provider_document(
    name: str,
    namespace: str,
    url: str,
    secret_name: str,
    secret_namespace: str = "",
) -> Doc:
    return {
        "apiVersion": FORKLIFT_API,
        "kind": "Provider",
        "metadata": _meta(name, namespace),
        "spec": {
            "secret": {"name": secret_name, "namespace": secret_namespace or namespace},
            "type": "ova",
            "url": url,
        },
    }


def network_map_document(
    name: str,
    namespace: str,
    source_provider: str,
    destination_provider: str,
    mappings: Sequence[NetworkMapping],
) -> Doc:
    entries = [
        {
            "source": {"id": m.id, "name": m.name},
            "destination": {"type": m.destination_type},
        }
        for m in mappings
    ]
    return {
        "apiVersion": FORKLIFT_API,
        "kind": "NetworkMap",
        "metadata": _meta(name, namespace),
        "spec": {
            "map": entries,
            "provider": _provider_pair(source_provider, destination_provider, namespace),
        },
    }


def storage_map_document(
    name: str,
    namespace: str,
    source_provider: str,
    destination_provider: str,
    mappings: Sequence[StorageMapping],
) -> Doc:
    entries = [
        {
            "source": {"id": m.id},
            "destination": {"storageClass": m.destination_storage_class},
        }
        for m in mappings
    ]
    return {
        "apiVersion": FORKLIFT_API,
        "kind": "StorageMap",
        "metadata": _meta(name, namespace),
        "spec": {
            "map": entries,
            "provider": _provider_pair(source_provider, destination_provider, namespace),
        },
    }


def plan_document(
    name: str,
    namespace: str,
    source_provider: str,
    destination_provider: str,
    network_map: str,
    storage_map: str,
    vms: Sequence[Tuple[str, str]],
    target_namespace: str = "",
    *,
    warm: bool = False,
) -> Doc:
    """`vms` is a sequence of (vm id, vm name)."""
    return {
        "apiVersion": FORKLIFT_API,
        "kind": "Plan",
        "metadata": _meta(name, namespace),
        "spec": {
            "provider": {
                "source": _ref("Provider", source_provider, namespace),
                "destination": _ref("Provider", destination_provider, namespace),
            },
            "map": {
                "network": _ref("NetworkMap", network_map, namespace),
                "storage": _ref("StorageMap", storage_map, namespace),
            },
            "targetNamespace": target_namespace or namespace,
            "pvcNameTemplateUseGenerateName": True,
            "skipGuestConversion": False,
            "warm": warm,
            "migrateSharedDisks": True,
            "vms": [{"id": vid, "name": vname} for vid, vname in vms],
        },
    }


def migration_document(name: str, namespace: str, plan_name: str, plan_namespace: str = "") -> Doc:
    return {
        "apiVersion": FORKLIFT_API,
        "kind": "Migration",
        "metadata": _meta(name, namespace),
        "spec": {"plan": {"name": plan_name, "namespace": plan_namespace or namespace}},
    }


def dump_document(doc: Doc) -> str:
    return yaml.safe_dump(doc, sort_keys=False, default_flow_style=False)


def write_document(doc: Doc, path: Union[str, Path]) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dump_document(doc), encoding="utf-8")
    return path


__all__ = [
    "FORKLIFT_API",
    "dump_document",
    "migration_document",
    "network_map_document",
    "plan_document",
    "provider_document",
    "secret_document",
    "storage_map_document",
    "write_document",
]
