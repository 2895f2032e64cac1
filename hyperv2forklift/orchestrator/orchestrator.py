# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# hyperv2forklift/orchestrator/orchestrator.py

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..config.config_loader import MigrationSettings
from ..core.exceptions import Fatal, Hyperv2ForkliftError
from ..core.logger import Log
from .pipeline import Pipeline, VMArtifacts, load_vm_records, split_results


class Orchestrator:
    """
    Dispatches the parsed `cmd` onto the pipeline and returns a process exit code.
    """

    def __init__(
        self,
        logger: logging.Logger,
        args: argparse.Namespace,
        conf: Optional[Dict[str, Any]] = None,
        *,
        pipeline: Optional[Pipeline] = None,
    ):
        self.logger = logger
        self.args = args
        self.settings = MigrationSettings.from_config(conf or {}, args)
        self.pipeline = pipeline or Pipeline(
            logger,
            self.settings,
            disk_dir=Path(getattr(args, "disk_dir", None) or "."),
            output_dir=Path(getattr(args, "output_dir", None) or "."),
            workers=getattr(args, "workers", None),
        )
        Log.trace(
            self.logger,
            "Orchestrator init: cmd=%r output_dir=%r",
            getattr(args, "cmd", None),
            getattr(args, "output_dir", None),
        )

    def _load(self) -> List[Any]:
        return load_vm_records(Path(self.args.vm_json))

    def _finish(self, results: List[VMArtifacts]) -> int:
        self.pipeline.print_summary(results)
        ok, failed = split_results(results)
        if failed:
            Log.fail(self.logger, f"{len(failed)} of {len(results)} VM(s) failed")
            return 1
        if not ok:
            return 1
        Log.ok(self.logger, f"{len(ok)} VM(s) done")
        return 0

    def run_ovf(self) -> int:
        Log.step(self.logger, "Compiling OVF descriptors")
        return self._finish(self.pipeline.run(self._load(), with_plan=False))

    def run_plan(self) -> int:
        if not self.settings.namespace:
            Log.warn(self.logger, "namespace is empty; documents will carry no metadata.namespace")
        Log.step(self.logger, "Compiling descriptors and Forklift documents")
        results = self.pipeline.run(self._load(), with_plan=True)
        shared = self.pipeline.write_shared_documents()
        for path in shared.values():
            self.logger.info("Wrote %s", path)
        return self._finish(results)

    def run_migrate(self) -> int:
        self.settings.require_cluster()
        results = self.pipeline.run(self._load(), with_plan=True)
        ok, _failed = split_results(results)
        if not ok:
            self.pipeline.print_summary(results)
            raise Fatal(1, "No VM produced a migration plan; nothing to apply")

        Log.step(self.logger, "Applying secret and provider")
        self.pipeline.apply_shared(self.pipeline.write_shared_documents())

        rc = 0
        for art in ok:
            try:
                self.pipeline.migrate_vm(art)
                Log.ok(self.logger, f"{art.vm_name}: migration {art.migration_name} succeeded")
            except Hyperv2ForkliftError as e:
                art.error = str(e)
                Log.fail(self.logger, f"{art.vm_name}: {e.user_message(include_context=True)}")
                rc = rc or e.code
        self.pipeline.print_summary(results)
        if rc == 0 and len(ok) != len(results):
            rc = 1
        return rc

    def run_monitor(self) -> int:
        if not self.settings.namespace:
            raise Fatal(2, "NAMESPACE environment variable not set (or --namespace / config `namespace`)")
        res = self.pipeline.monitor(self.settings.migration_name)
        Log.ok(self.logger, f"{res.message} after {res.ticks} poll(s)")
        return 0

    def run(self) -> int:
        cmd = getattr(self.args, "cmd", None)
        handlers = {
            "ovf": self.run_ovf,
            "plan": self.run_plan,
            "migrate": self.run_migrate,
            "monitor": self.run_monitor,
        }
        handler = handlers.get(cmd)
        if handler is None:
            raise Fatal(2, f"Unknown cmd: {cmd!r}")
        Log.banner(self.logger, f"hyperv2forklift {cmd}")
        return handler()


__all__ = ["Orchestrator"]
