# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# hyperv2forklift/forklift/kubectl.py

from __future__ import annotations

import json
import logging
import subprocess
from pathlib import Path
from typing import Any, Callable, Dict, List, Union

from ..core.exceptions import wrap_cluster

LOG = logging.getLogger(__name__)

KUBECTL = "kubectl"

Fetch = Callable[[], Dict[str, Any]]


def _tail(s: str, limit: int = 2000) -> str:
    s = (s or "").strip()
    return s if len(s) <= limit else "..." + s[-limit:]


def run_kubectl(
    args: List[str],
    *,
    binary: str = KUBECTL,
    timeout_s: int = 120,
) -> str:
    """
    Run 'kubectl <args>' once and return stdout.

    Failures are not retried; a missing binary, a timeout and a non-zero exit all
    raise ClusterError.
    """
    cmd = [binary] + args
    LOG.debug("Running: %s", " ".join(cmd))
    try:
        p = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout_s)
    except FileNotFoundError as e:
        raise wrap_cluster(f"'{binary}' not found. Install kubectl or set kubectl_binary.", e) from e
    except subprocess.TimeoutExpired as e:
        raise wrap_cluster(f"{binary} timed out after {timeout_s}s: {' '.join(args)}", e) from e

    if p.returncode != 0:
        raise wrap_cluster(
            f"{binary} {' '.join(args)} failed (rc={p.returncode}): {_tail(p.stderr or p.stdout)}", rc=p.returncode
        )
    return p.stdout or ""


def run_kubectl_json(args: List[str], *, binary: str = KUBECTL, timeout_s: int = 120) -> Any:
    out = run_kubectl(args + ["-o", "json"], binary=binary, timeout_s=timeout_s).strip()
    if out == "":
        return None
    try:
        return json.loads(out)
    except ValueError as e:
        raise wrap_cluster(f"Failed to parse {binary} JSON output: {e}", e) from e


def apply_file(path: Union[str, Path], *, binary: str = KUBECTL, timeout_s: int = 120) -> str:
    out = run_kubectl(["apply", "-f", str(path)], binary=binary, timeout_s=timeout_s)
    LOG.info("Applied %s", path)
    return out


def get_resource(
    kind: str,
    name: str,
    namespace: str,
    *,
    binary: str = KUBECTL,
    timeout_s: int = 120,
) -> Dict[str, Any]:
    obj = run_kubectl_json(["get", kind, name, "-n", namespace], binary=binary, timeout_s=timeout_s)
    if not isinstance(obj, dict):
        raise wrap_cluster(f"{kind}/{name} in {namespace}: expected a JSON object, got {type(obj).__name__}")
    return obj


def resource_fetcher(
    kind: str,
    name: str,
    namespace: str,
    *,
    binary: str = KUBECTL,
    timeout_s: int = 120,
) -> Fetch:
    """Zero-argument fetch callable for the monitor loops."""

    def fetch() -> Dict[str, Any]:
        return get_resource(kind, name, namespace, binary=binary, timeout_s=timeout_s)

    return fetch


__all__ = [
    "Fetch",
    "apply_file",
    "get_resource",
    "resource_fetcher",
    "run_kubectl",
    "run_kubectl_json",
]
