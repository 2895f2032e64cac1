# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# hyperv2forklift/cli/parser.py
from __future__ import annotations

import argparse
import sys
from typing import Any, Dict, Optional, Sequence, Tuple

from ..config.config_loader import Config
from ..core.exceptions import Fatal
from ..core.logger import Log, c
from ..core.utils import U
from .help_texts import COMMANDS_SUMMARY, YAML_EXAMPLE

COMMANDS = ("ovf", "plan", "migrate", "monitor")
NEEDS_VM_JSON = ("ovf", "plan", "migrate")


class HelpFormatter(argparse.RawDescriptionHelpFormatter, argparse.ArgumentDefaultsHelpFormatter):
    """Combines raw description formatting with default value display in help."""


def _build_epilog() -> str:
    return (
        c("Commands:\n", "cyan", ["bold"])
        + c(COMMANDS_SUMMARY, "cyan")
        + "\n"
        + c("YAML example:\n", "cyan", ["bold"])
        + c(YAML_EXAMPLE, "cyan")
    )


def _add_global_config_logging(p: argparse.ArgumentParser) -> None:
    # ------------------------------------------------------------------
    # Global config/logging (two-phase parse relies on these)
    # ------------------------------------------------------------------
    from .. import __version__

    p.add_argument(
        "--config",
        action="append",
        default=[],
        help="YAML/JSON config file (repeatable; later overrides earlier).",
    )
    p.add_argument("--dump-config", action="store_true", help="Print merged config and exit.")
    p.add_argument("--dump-args", action="store_true", help="Print final parsed args and exit.")
    p.add_argument("--version", action="version", version=__version__)
    p.add_argument("-v", "--verbose", action="count", default=0, help="Verbosity: -v, -vv, -vvv (trace)")
    p.add_argument("-q", "--quiet", action="count", default=0, help="Less output: -q warnings, -qq errors")
    p.add_argument("--log-file", dest="log_file", default=None, help="Write logs to file.")
    p.add_argument("--json-logs", action="store_true", help="Emit NDJSON log records on stderr.")


def _add_operation(p: argparse.ArgumentParser) -> None:
    # ------------------------------------------------------------------
    # Operation: YAML-driven (no subcommands)
    # ------------------------------------------------------------------
    p.add_argument(
        "--cmd",
        dest="cmd",
        default=None,
        choices=COMMANDS,
        help="Operation (normally from YAML `cmd:`).",
    )
    p.add_argument("--vm-json", dest="vm_json", default=None, help="Hyper-V VM JSON (object or list).")
    p.add_argument("--disk-dir", dest="disk_dir", default=".", help="Directory holding the converted .raw disks.")
    p.add_argument("--output-dir", dest="output_dir", default=".", help="Directory for .ovf and YAML documents.")
    p.add_argument("--workers", type=int, default=None, help="Parallel VM workers (env HYPERV2FORKLIFT_WORKERS).")


def _add_cluster_knobs(p: argparse.ArgumentParser) -> None:
    # ------------------------------------------------------------------
    # Cluster / Forklift. Defaults stay None so env and config are not shadowed.
    # ------------------------------------------------------------------
    g = p.add_argument_group("Forklift")
    g.add_argument("--namespace", default=None, help="Namespace for Forklift resources (env NAMESPACE).")
    g.add_argument("--nfs-url", dest="nfs_url", default=None, help="OVA provider NFS export (env OVA_PROVIDER_NFS_SERVER_PATH).")
    g.add_argument("--storage-class", dest="storage_class", default=None, help="Destination storage class (env STORAGE_CLASS).")
    g.add_argument(
        "--provider-ovf-dir",
        dest="provider_ovf_dir",
        default=None,
        help="Directory under which the OVA provider sees --output-dir (used to derive disk and VM ids).",
    )
    g.add_argument("--migration-name", dest="migration_name", default=None, help="Migration to create or monitor.")
    g.add_argument(
        "--insecure-skip-verify",
        dest="insecure_skip_verify",
        action="store_true",
        default=None,
        help="Mark the provider secret insecureSkipVerify.",
    )
    g.add_argument(
        "--no-confirmed-ids",
        dest="no_confirmed_ids",
        action="store_true",
        default=None,
        help="Derive every inventory id instead of using the confirmed pools.",
    )
    g.add_argument("--poll-interval-s", dest="poll_interval_s", type=float, default=None, help="Migration poll interval.")
    g.add_argument("--migration-timeout-s", dest="migration_timeout_s", type=float, default=None, help="Migration deadline.")
    g.add_argument("--plan-timeout-s", dest="plan_timeout_s", type=float, default=None, help="Plan readiness deadline.")
    g.add_argument("--kubectl-binary", dest="kubectl_binary", default=None, help="kubectl (or oc) executable.")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="hyperv2forklift",
        description=c("hyperv2forklift: Hyper-V VM records → OVF descriptors → Forklift migration", "green", ["bold"]),
        formatter_class=HelpFormatter,
        epilog=_build_epilog(),
    )
    _add_global_config_logging(p)
    _add_operation(p)
    _add_cluster_knobs(p)
    return p


def _build_preparser() -> argparse.ArgumentParser:
    pre = argparse.ArgumentParser(add_help=False)
    pre.add_argument("--config", action="append", default=[])
    pre.add_argument("-v", "--verbose", action="count", default=0)
    pre.add_argument("-q", "--quiet", action="count", default=0)
    pre.add_argument("--log-file", dest="log_file", default=None)
    pre.add_argument("--json-logs", action="store_true")
    pre.add_argument("--dump-config", action="store_true")
    pre.add_argument("--dump-args", action="store_true")
    return pre


def _load_merged_config(logger: Any, cfgs: Sequence[str]) -> Dict[str, Any]:
    if not cfgs:
        return {}
    expanded = Config.expand_configs(logger, list(cfgs))
    return Config.load_many(logger, expanded)


def validate_args(args: argparse.Namespace) -> None:
    if not args.cmd:
        raise Fatal(2, f"No operation given: set `cmd:` in config or pass --cmd ({', '.join(COMMANDS)})")
    # argparse does not check choices against config-supplied defaults
    if args.cmd not in COMMANDS:
        raise Fatal(2, f"Unknown cmd {args.cmd!r}; expected one of: {', '.join(COMMANDS)}")
    if args.cmd in NEEDS_VM_JSON and not args.vm_json:
        raise Fatal(2, f"--cmd {args.cmd} needs a VM JSON file (--vm-json or config `vm_json`)")
    if args.workers is not None and args.workers < 1:
        raise Fatal(2, f"--workers must be >= 1, got {args.workers}")


def parse_args_with_config(
    argv: Optional[Sequence[str]] = None,
    logger: Any = None,
    env: Optional[Dict[str, str]] = None,
) -> Tuple[argparse.Namespace, Dict[str, Any], Any]:
    """
    Flow:
      Phase 0: parse only the flags needed to locate config and set up logging
      Phase 1: load + merge config files, then overlay environment variables
      Phase 2: apply the result as parser defaults
      Phase 3: full parse (CLI wins)
      Phase 4: validate
    """
    if argv is None:
        argv = sys.argv[1:]
    argv = list(argv)

    parser = build_parser()

    pre = _build_preparser()
    args0, _rest = pre.parse_known_args(argv)

    if logger is None:
        logger = Log.setup(args0.verbose, args0.log_file, quiet=args0.quiet, json_logs=args0.json_logs)

    conf = Config.apply_env(_load_merged_config(logger, args0.config or []), env)

    if args0.dump_config:
        print(U.json_dump(conf))
        raise SystemExit(0)

    Config.apply_as_defaults(logger, parser, conf)

    args = parser.parse_args(argv)

    if args0.dump_args:
        print(U.json_dump(vars(args)))
        raise SystemExit(0)

    validate_args(args)
    return args, conf, logger


__all__ = [
    "COMMANDS",
    "HelpFormatter",
    "build_parser",
    "parse_args_with_config",
    "validate_args",
]
