# SPDX-License-Identifier: LGPL-3.0-or-later
# hyperv2forklift/core/exceptions.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


def _safe_int(x: Any, default: int = 1) -> int:
    try:
        return int(x)
    except (TypeError, ValueError):
        return default


def _clamp_exit_code(code: int) -> int:
    # Exit codes are 0..255.
    if code < 0:
        return 1
    if code > 255:
        return 255
    return code


def _one_line(s: str, limit: int = 600) -> str:
    s = (s or "").strip().replace("\r", " ").replace("\n", " ")
    s = " ".join(s.split())
    return s if len(s) <= limit else (s[: limit - 3] + "...")


_SECRET_KEY_PARTS = (
    "pass",
    "password",
    "passwd",
    "secret",
    "token",
    "apikey",
    "api_key",
    "auth",
    "cookie",
    "bearer",
    "private",
)

REDACTED = "***REDACTED***"


def _is_secret_key(k: str) -> bool:
    ks = (k or "").lower()
    return any(p in ks for p in _SECRET_KEY_PARTS)


def _redact_context(ctx: Dict[str, Any]) -> Dict[str, Any]:
    return {k: (REDACTED if _is_secret_key(str(k)) else v) for k, v in ctx.items()}


def _format_context_compact(ctx: Dict[str, Any]) -> str:
    # Stable order, redaction, single-line.
    parts = []
    for k, v in sorted(_redact_context(ctx).items(), key=lambda kv: str(kv[0])):
        parts.append(f"{k}={v!r}" if v != REDACTED else f"{k}={v}")
    return ", ".join(parts)


@dataclass(eq=False)
class Hyperv2ForkliftError(Exception):
    """
    Base project error with:
      - stable fields for reporting/JSON
      - readable __str__ (what users see)
      - safe code handling (never crashes on int())
    """
    code: int = 1
    msg: str = "error"
    cause: Optional[BaseException] = None
    context: Optional[Dict[str, Any]] = None

    def __post_init__(self) -> None:
        self.code = _clamp_exit_code(_safe_int(self.code, default=1))
        self.msg = _one_line(self.msg) or self.__class__.__name__
        if self.context is None:
            self.context = {}
        super().__init__(self.msg)
        # Some tooling inspects Exception.args directly.
        self.args = (self.msg,)

    def with_context(self, **ctx: Any) -> "Hyperv2ForkliftError":
        if self.context is None:
            self.context = {}
        self.context.update(ctx)
        return self

    def user_message(self, *, include_context: bool = False, include_cause: bool = False) -> str:
        """
        Human-friendly message for CLI output/logs.
        """
        parts = [self.msg or self.__class__.__name__]

        if include_context and self.context:
            parts.append(f"[{_one_line(_format_context_compact(self.context), limit=600)}]")

        if include_cause and self.cause is not None:
            parts.append(f"(cause: {type(self.cause).__name__}: {_one_line(str(self.cause))})")

        return " ".join(parts)

    def __str__(self) -> str:
        return self.user_message(include_context=False, include_cause=False)

    def to_dict(self, *, include_cause: bool = False) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "type": self.__class__.__name__,
            "code": self.code,
            "message": self.msg,
            "context": _redact_context(self.context or {}),
        }
        if include_cause and self.cause is not None:
            d["cause"] = {"type": type(self.cause).__name__, "message": _one_line(str(self.cause))}
        return d


class Fatal(Hyperv2ForkliftError):
    """
    User-facing fatal error (exit code should be honored by top-level main()).
    """
    pass


class DescriptorError(Hyperv2ForkliftError):
    """
    A VM record could not be compiled into a descriptor (bad shape, disk not staged).
    Fails only the VM it belongs to.
    """
    pass


class MappingError(Hyperv2ForkliftError):
    """
    Disks or networks could not be discovered for the mapping documents.
    """
    pass


class ClusterError(Hyperv2ForkliftError):
    """
    kubectl invocation failed (missing binary, non-zero exit, unparseable output).
    """
    pass


class MigrationFailedError(Hyperv2ForkliftError):
    """The migration resource reported a Failed=True condition."""
    pass


class MigrationTimeoutError(Hyperv2ForkliftError):
    """The deadline elapsed before the watched resource reached a terminal state."""
    pass


def wrap_fatal(msg: str, exc: Optional[BaseException] = None, code: int = 1, **context: Any) -> Fatal:
    return Fatal(code=code, msg=msg, cause=exc, context=context or None)


def wrap_descriptor(msg: str, exc: Optional[BaseException] = None, code: int = 20, **context: Any) -> DescriptorError:
    return DescriptorError(code=code, msg=msg, cause=exc, context=context or None)


def wrap_mapping(msg: str, exc: Optional[BaseException] = None, code: int = 30, **context: Any) -> MappingError:
    return MappingError(code=code, msg=msg, cause=exc, context=context or None)


def wrap_cluster(msg: str, exc: Optional[BaseException] = None, code: int = 40, **context: Any) -> ClusterError:
    return ClusterError(code=code, msg=msg, cause=exc, context=context or None)


def format_exception_for_cli(e: BaseException, *, verbose: int = 0) -> str:
    """
    One-liner output for CLI.

    verbose=0: just message
    verbose=1: message + compact context (if any)
    verbose>=2: message + context + cause
    """
    if isinstance(e, Hyperv2ForkliftError):
        return e.user_message(
            include_context=(verbose >= 1),
            include_cause=(verbose >= 2),
        )

    if verbose >= 2:
        return f"{type(e).__name__}: {_one_line(str(e))}"
    return _one_line(str(e)) or type(e).__name__
