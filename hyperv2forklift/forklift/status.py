# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# hyperv2forklift/forklift/status.py
"""
Tolerant views over Forklift resource status.

`kubectl get ... -o json` returns whatever the controller has populated so far;
every lookup here is optional and defaults instead of raising.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

NO_VMS = "No VMs found in migration status"
UNKNOWN_PERCENT = "?"
PHASE_COMPLETED = "Completed"


def nested_get(obj: Any, *path: str) -> Tuple[Any, bool]:
    """Walk mapping keys; (value, True) if every key resolved, else (None, False)."""
    cur = obj
    for key in path:
        if not isinstance(cur, Mapping) or key not in cur:
            return None, False
        cur = cur[key]
    return cur, True


def nested_str(obj: Any, *path: str, default: str = "") -> str:
    v, found = nested_get(obj, *path)
    return v if found and isinstance(v, str) else default


def _to_int(v: Any) -> Optional[int]:
    if isinstance(v, bool):
        return None
    if isinstance(v, int):
        return v
    if isinstance(v, float):
        return int(v)
    if isinstance(v, str):
        try:
            return int(v.strip())
        except ValueError:
            return None
    return None


def nested_int(obj: Any, *path: str, default: int = 0) -> int:
    v, found = nested_get(obj, *path)
    if not found:
        return default
    i = _to_int(v)
    return default if i is None else i


def nested_list(obj: Any, *path: str) -> List[Any]:
    v, found = nested_get(obj, *path)
    return list(v) if found and isinstance(v, list) else []


def nested_map(obj: Any, *path: str) -> Dict[str, Any]:
    v, found = nested_get(obj, *path)
    return dict(v) if found and isinstance(v, Mapping) else {}


def _trunc_div(a: int, b: int) -> int:
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b >= 0) else -q


@dataclass(frozen=True)
class Condition:
    type: str
    status: str
    reason: str = ""
    message: str = ""


@dataclass(frozen=True)
class StepProgress:
    name: str
    phase: str
    completed: int = 0
    total: int = 0

    @property
    def percent(self) -> str:
        if self.phase == PHASE_COMPLETED:
            return "100%"
        if self.total > 0:
            return f"{_trunc_div(self.completed * 100, self.total)}%"
        return UNKNOWN_PERCENT


@dataclass(frozen=True)
class VMStatus:
    name: str
    phase: str
    steps: Tuple[StepProgress, ...] = ()


@dataclass(frozen=True)
class MigrationSnapshot:
    phase: str
    conditions: Tuple[Condition, ...]
    vms: Tuple[VMStatus, ...]

    @classmethod
    def from_object(cls, obj: Any) -> "MigrationSnapshot":
        conditions = tuple(
            Condition(
                type=nested_str(c, "type"),
                status=nested_str(c, "status"),
                reason=nested_str(c, "reason"),
                message=nested_str(c, "message"),
            )
            for c in nested_list(obj, "status", "conditions")
            if isinstance(c, Mapping)
        )

        vms: List[VMStatus] = []
        for v in nested_list(obj, "status", "vms"):
            if not isinstance(v, Mapping):
                continue
            steps = tuple(
                StepProgress(
                    name=nested_str(s, "name"),
                    phase=nested_str(s, "phase"),
                    completed=nested_int(s, "progress", "completed"),
                    total=nested_int(s, "progress", "total"),
                )
                for s in nested_list(v, "pipeline")
                if isinstance(s, Mapping)
            )
            vms.append(VMStatus(name=nested_str(v, "name"), phase=nested_str(v, "phase"), steps=steps))

        return cls(phase=nested_str(obj, "status", "phase"), conditions=conditions, vms=tuple(vms))

    def has_condition(self, type_: str, status: str = "True") -> bool:
        return any(c.type == type_ and c.status == status for c in self.conditions)

    @property
    def failure_message(self) -> str:
        for c in self.conditions:
            if c.type == "Failed" and c.status == "True":
                return c.message or c.reason
        return ""


def render_progress(snapshot: MigrationSnapshot) -> str:
    if not snapshot.vms:
        return NO_VMS
    lines: List[str] = []
    for vm in snapshot.vms:
        lines.append(f"VM: {vm.name}")
        lines.append(f"   Phase: {vm.phase}")
        for s in vm.steps:
            lines.append(f"  Step: {s.name} | {s.phase} | Progress: {s.percent}")
        lines.append("")
    return "\n".join(lines)


__all__ = [
    "Condition",
    "MigrationSnapshot",
    "StepProgress",
    "VMStatus",
    "nested_get",
    "nested_int",
    "nested_list",
    "nested_map",
    "nested_str",
    "render_progress",
]
