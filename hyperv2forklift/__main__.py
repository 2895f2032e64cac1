# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# hyperv2forklift/__main__.py
from __future__ import annotations

import sys
import traceback
from typing import Optional, Sequence

from .cli.parser import parse_args_with_config
from .core.exceptions import Fatal, Hyperv2ForkliftError, format_exception_for_cli
from .orchestrator.orchestrator import Orchestrator


def _print_stderr(msg: str) -> None:
    print(msg, file=sys.stderr)


def _safe_log(logger, level: str, msg: str) -> None:
    """Log through `logger` when there is one, else stderr."""
    if logger is None:
        _print_stderr(msg)
        return
    fn = getattr(logger, level, None)
    if callable(fn):
        fn(msg)
    else:
        _print_stderr(msg)


def main(argv: Optional[Sequence[str]] = None) -> None:
    logger: Optional[object] = None

    # Phase 1: parse (Fatal can happen here)
    try:
        args, conf, logger = parse_args_with_config(argv)
    except Fatal as e:
        _print_stderr(f"💥 ERROR    {format_exception_for_cli(e, verbose=1)}")
        raise SystemExit(e.code)
    except KeyboardInterrupt:
        _print_stderr("Interrupted by user (Ctrl+C).")
        raise SystemExit(130)

    verbose = getattr(args, "verbose", 0) or 0

    # Phase 2: run
    try:
        rc = Orchestrator(logger, args, conf).run()
    except Hyperv2ForkliftError as e:
        # Fatal and the migration/cluster errors all carry their exit code.
        _safe_log(logger, "error", format_exception_for_cli(e, verbose=max(1, verbose)))
        rc = e.code
    except KeyboardInterrupt:
        _safe_log(logger, "warning", "Interrupted by user (Ctrl+C).")
        rc = 130
    except Exception as e:
        _safe_log(logger, "error", f"💥 UNHANDLED {type(e).__name__}: {e}")
        _safe_log(logger, "debug", traceback.format_exc())
        rc = 1

    raise SystemExit(rc)


if __name__ == "__main__":
    main()
