# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# hyperv2forklift/orchestrator/pipeline.py
"""
Per-VM pipeline: compile descriptor -> write OVF -> discover mappings -> write
Forklift documents, then optionally apply them and follow the migration.

VMs are independent; each worker writes only files named after its own VM, so
the output directory is the only shared resource.
"""

from __future__ import annotations

import concurrent.futures
import json
import logging
import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
)
from rich.table import Table

from ..config.config_loader import MigrationSettings, dns_label
from ..core.exceptions import Fatal, Hyperv2ForkliftError, wrap_fatal
from ..core.logger import Log
from ..core.utils import U
from ..forklift import documents as docs
from ..forklift.ids import IdentifierGenerators
from ..forklift.kubectl import apply_file, resource_fetcher
from ..forklift.mapping import (
    NetworkMapping,
    StorageMapping,
    discover_networks,
    discover_storage,
    discover_vm_id,
    disk_files_in,
)
from ..forklift.monitor import MigrationMonitor, MonitorResult, wait_for_plan_ready
from ..ovf.compiler import DiskSizeResolver, compile_descriptor, stat_disk_size
from ..ovf.model import VMRecord
from ..ovf.reader import read_descriptor
from ..ovf.writer import write_descriptor

SECRET_FILE = "ova-secret.yaml"
PROVIDER_FILE = "ova-provider.yaml"

Applier = Callable[[Path], Any]
FetcherFactory = Callable[[str, str, str], Callable[[], Dict[str, Any]]]


@dataclass
class VMArtifacts:
    vm_name: str
    index: int
    ovf_path: Optional[Path] = None
    vm_id: str = ""
    networks: List[NetworkMapping] = field(default_factory=list)
    storage: List[StorageMapping] = field(default_factory=list)
    documents: Dict[str, Path] = field(default_factory=dict)
    migration_name: str = ""
    plan_name: str = ""
    error: str = ""

    @property
    def ok(self) -> bool:
        return not self.error


def load_vm_records(path: Path) -> List[Any]:
    """Raw VM entries from a `Get-VM | ConvertTo-Json` dump (object or list)."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8-sig"))
    except OSError as e:
        raise wrap_fatal(f"Cannot read VM JSON {path}: {e}", e, code=2, path=str(path)) from e
    except ValueError as e:
        raise wrap_fatal(f"Invalid VM JSON {path}: {e}", e, code=2, path=str(path)) from e
    if isinstance(data, dict):
        return [data]
    if isinstance(data, list):
        return list(data)
    raise Fatal(2, f"VM JSON {path} must contain an object or a list, got {type(data).__name__}")


def _default_workers(n: int) -> int:
    env = os.environ.get("HYPERV2FORKLIFT_WORKERS")
    if env:
        try:
            return max(1, int(env))
        except ValueError:
            pass
    return max(1, min(4, n, os.cpu_count() or 1))


class Pipeline:
    def __init__(
        self,
        logger: logging.Logger,
        settings: MigrationSettings,
        *,
        disk_dir: Path,
        output_dir: Path,
        resolver: DiskSizeResolver = stat_disk_size,
        workers: Optional[int] = None,
        applier: Optional[Applier] = None,
        fetcher_factory: Optional[FetcherFactory] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        console: Optional[Console] = None,
    ) -> None:
        self.logger = logger
        self.settings = settings
        self.disk_dir = Path(disk_dir)
        self.output_dir = Path(output_dir)
        self.resolver = resolver
        self.workers = workers
        self.ids = IdentifierGenerators.from_pools(settings.identifier_pools, logger=logger)
        self._apply = applier or (lambda p: apply_file(p, binary=settings.kubectl_binary))
        self._fetcher_factory = fetcher_factory or (
            lambda kind, name, ns: resource_fetcher(kind, name, ns, binary=settings.kubectl_binary)
        )
        self._clock = clock
        self._sleep = sleep
        self.console = console or Console(stderr=True)

    # ------------------------------------------------------------------
    # Per-VM stages
    # ------------------------------------------------------------------

    def _provider_ovf_path(self, ovf_path: Path) -> str:
        base = self.settings.provider_ovf_dir
        if base:
            return f"{base.rstrip('/')}/{ovf_path.name}"
        return str(ovf_path.resolve())

    def _write_ovf(self, raw: Any, index: int, stem: str) -> Tuple[VMArtifacts, Path]:
        vm = VMRecord.from_json(raw)
        art = VMArtifacts(vm_name=vm.name, index=index)
        log = Log.bind(self.logger, vm=vm.name)
        descriptor = compile_descriptor(vm, self.disk_dir, self.resolver, logger=log)
        ovf_path = write_descriptor(descriptor, self.output_dir / f"{stem}.ovf")
        art.ovf_path = ovf_path
        log.info("Wrote %s", ovf_path)
        return art, ovf_path

    def compile_vm(self, raw: Any, index: int, stem: Optional[str] = None) -> VMArtifacts:
        art, _ = self._write_ovf(raw, index, stem or U.safe_name(_raw_name(raw)))
        return art

    def plan_vm(self, raw: Any, index: int, per_vm: bool, stem: Optional[str] = None) -> VMArtifacts:
        stem = stem or U.safe_name(_raw_name(raw))
        art, ovf_path = self._write_ovf(raw, index, stem)
        s = self.settings
        names = s.names_for(stem, per_vm)
        ovf_id_path = self._provider_ovf_path(ovf_path)

        # Read back what was written, so mappings match the descriptor on disk.
        summary = read_descriptor(ovf_path, logger=self.logger)
        art.networks = discover_networks(summary, self.ids, s.network_type, logger=self.logger)
        art.storage = discover_storage(
            summary,
            disk_files_in(self.disk_dir),
            self.ids,
            s.storage_class,
            ovf_id_path,
            self.resolver,
            disk_dir=self.disk_dir,
            logger=self.logger,
        )
        # Batch runs take VM ids by position, so each VM gets its own pool entry.
        vm_index = index if per_vm else 0
        art.vm_id = discover_vm_id(art.vm_name, ovf_id_path, self.ids, vm_index, logger=self.logger)

        out = self.output_dir
        art.documents["network-map"] = docs.write_document(
            docs.network_map_document(names.network_map, s.namespace, names.provider, s.destination_provider, art.networks),
            out / f"{stem}-network-map.yaml",
        )
        art.documents["storage-map"] = docs.write_document(
            docs.storage_map_document(names.storage_map, s.namespace, names.provider, s.destination_provider, art.storage),
            out / f"{stem}-storage-map.yaml",
        )
        art.documents["plan"] = docs.write_document(
            docs.plan_document(
                names.plan,
                s.namespace,
                names.provider,
                s.destination_provider,
                names.network_map,
                names.storage_map,
                [(art.vm_id, art.vm_name)],
                s.target_namespace,
            ),
            out / f"{stem}-plan.yaml",
        )
        art.documents["migration"] = docs.write_document(
            docs.migration_document(names.migration, s.namespace, names.plan),
            out / f"{stem}-migration.yaml",
        )
        art.plan_name = names.plan
        art.migration_name = names.migration
        return art

    def write_shared_documents(self) -> Dict[str, Path]:
        s = self.settings
        return {
            "secret": docs.write_document(
                docs.secret_document(s.secret_name, s.namespace, s.nfs_url, s.insecure_skip_verify),
                self.output_dir / SECRET_FILE,
            ),
            "provider": docs.write_document(
                docs.provider_document(s.provider_name, s.namespace, s.nfs_url, s.secret_name),
                self.output_dir / PROVIDER_FILE,
            ),
        }

    # ------------------------------------------------------------------
    # Batch
    # ------------------------------------------------------------------

    def run(self, raw_vms: Sequence[Any], *, with_plan: bool) -> List[VMArtifacts]:
        """
        Run compile (and plan) for every VM in parallel. A failing VM is logged and
        reported in its VMArtifacts.error; the others continue.
        """
        U.ensure_dir(self.output_dir)
        n = len(raw_vms)
        results: List[Optional[VMArtifacts]] = [None] * n
        if n == 0:
            self.logger.warning("No VM records to process")
            return []

        per_vm = n > 1
        max_workers = self.workers or _default_workers(n)
        Log.trace(self.logger, "pipeline: vms=%d workers=%d with_plan=%s", n, max_workers, with_plan)

        stems = artifact_stems([_raw_name(raw) for raw in raw_vms], logger=self.logger)

        def work(raw: Any, idx: int) -> VMArtifacts:
            if with_plan:
                return self.plan_vm(raw, idx, per_vm, stems[idx])
            return self.compile_vm(raw, idx, stems[idx])

        with Progress(
            TextColumn("{task.description}"),
            BarColumn(),
            TextColumn("{task.percentage:>3.0f}%"),
            TimeElapsedColumn(),
            TimeRemainingColumn(),
            console=self.console,
        ) as progress:
            task = progress.add_task("Processing VMs", total=n)
            with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as executor:
                futures = {executor.submit(work, raw, idx): idx for idx, raw in enumerate(raw_vms)}
                for future in concurrent.futures.as_completed(futures):
                    idx = futures[future]
                    try:
                        results[idx] = future.result()
                        Log.ok(self.logger, f"VM {idx + 1}/{n}: {results[idx].vm_name}")
                    except Hyperv2ForkliftError as e:
                        name = _raw_name(raw_vms[idx])
                        self.logger.error("VM %d/%d (%s) skipped: %s", idx + 1, n, name, e.user_message(include_context=True))
                        results[idx] = VMArtifacts(vm_name=name, index=idx, error=str(e))
                    except Exception as e:
                        name = _raw_name(raw_vms[idx])
                        self.logger.error("VM %d/%d (%s) skipped: %s: %s", idx + 1, n, name, type(e).__name__, e)
                        self.logger.debug("pipeline worker exception", exc_info=True)
                        results[idx] = VMArtifacts(vm_name=name, index=idx, error=str(e))
                    progress.update(task, advance=1)

        out = [r for r in results if r is not None]
        if with_plan:
            self._warn_shared_storage_ids(out)
        return out

    def _warn_shared_storage_ids(self, results: Sequence[VMArtifacts]) -> None:
        """Pooled disk ids are positional per VM, so two VMs can be handed the same one."""
        pooled = set(self.ids.storage.pool.ids)
        owners: Dict[str, List[str]] = {}
        for r in results:
            if not r.ok:
                continue
            for sm in r.storage:
                if sm.id in pooled:
                    owners.setdefault(sm.id, []).append(r.vm_name)
        for sid, vms in owners.items():
            if len(vms) > 1:
                self.logger.warning(
                    "Pooled storage id %s is used by %d VMs (%s); Forklift will see them as one disk",
                    sid,
                    len(vms),
                    ", ".join(vms),
                )

    # ------------------------------------------------------------------
    # Cluster
    # ------------------------------------------------------------------

    def apply_shared(self, shared: Dict[str, Path]) -> None:
        for key in ("secret", "provider"):
            self._apply(shared[key])

    def migrate_vm(self, art: VMArtifacts) -> MonitorResult:
        """Apply the VM's documents in dependency order, wait for the plan, follow the migration."""
        s = self.settings
        Log.step(self.logger, f"Migrating {art.vm_name}")
        for key in ("storage-map", "network-map", "plan"):
            self._apply(art.documents[key])

        wait_for_plan_ready(
            self._fetcher_factory("plan", art.plan_name, s.namespace),
            s.namespace,
            art.plan_name,
            s.plan_timeout_s,
            clock=self._clock,
            sleep=self._sleep,
            logger=self.logger,
        )

        self._apply(art.documents["migration"])
        return self.monitor(art.migration_name)

    def monitor(self, migration_name: str) -> MonitorResult:
        s = self.settings
        mon = MigrationMonitor(
            self._fetcher_factory("migration", migration_name, s.namespace),
            s.namespace,
            migration_name,
            interval_s=s.poll_interval_s,
            timeout_s=s.migration_timeout_s,
            clock=self._clock,
            sleep=self._sleep,
            logger=self.logger,
        )
        return mon.wait()

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def summary_table(self, results: Sequence[VMArtifacts]) -> Table:
        table = Table(title="hyperv2forklift artifacts", show_lines=True)
        table.add_column("VM", style="bold")
        table.add_column("OVF")
        table.add_column("VM id")
        table.add_column("Networks", justify="right")
        table.add_column("Disks", justify="right")
        table.add_column("Status")
        for r in results:
            table.add_row(
                r.vm_name,
                r.ovf_path.name if r.ovf_path else "-",
                r.vm_id or "-",
                str(len(r.networks)) if r.networks else "-",
                str(len(r.storage)) if r.storage else "-",
                "[green]ok[/]" if r.ok else f"[red]{r.error}[/]",
            )
        return table

    def print_summary(self, results: Sequence[VMArtifacts]) -> None:
        self.console.print(self.summary_table(results))


def _raw_name(raw: Any) -> str:
    if isinstance(raw, dict) and isinstance(raw.get("Name"), str):
        return raw["Name"]
    return "VM"


def artifact_stems(names: Sequence[str], *, logger: Optional[logging.Logger] = None) -> List[str]:
    """
    One file stem per VM, unique once reduced to a Kubernetes name.

    Names that collapse to the same stem ("web 01", "web/01", "WEB-01") keep the
    first as is; later ones get "-<position>" appended.
    """
    log = logger or logging.getLogger(__name__)
    taken = set()
    out: List[str] = []
    for idx, name in enumerate(names):
        stem = U.safe_name(name)
        if dns_label(stem) in taken:
            base = stem[:48]
            n = idx + 1
            while dns_label(f"{base}-{n}") in taken:
                n += 1
            log.warning("VM %d (%s) collides with an earlier VM name, writing its artifacts as %s-%d", idx + 1, name, base, n)
            stem = f"{base}-{n}"
        taken.add(dns_label(stem))
        out.append(stem)
    return out


def split_results(results: Sequence[VMArtifacts]) -> Tuple[List[VMArtifacts], List[VMArtifacts]]:
    ok = [r for r in results if r.ok]
    failed = [r for r in results if not r.ok]
    return ok, failed


__all__ = [
    "Pipeline",
    "VMArtifacts",
    "artifact_stems",
    "load_vm_records",
    "split_results",
]
