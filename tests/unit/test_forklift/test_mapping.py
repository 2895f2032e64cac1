# SPDX-License-Identifier: LGPL-3.0-or-later
import pytest

from hyperv2forklift.core.exceptions import MappingError
from hyperv2forklift.forklift.ids import (
    IdentifierGenerators,
    derive_id,
    disk_object,
    fallback_vm_id,
)
from hyperv2forklift.forklift.mapping import (
    DEFAULT_SOURCE_NETWORK_NAME,
    discover_networks,
    discover_storage,
    discover_vm_id,
    disk_files_in,
)
from hyperv2forklift.ovf.compiler import compile_descriptor
from hyperv2forklift.ovf.model import VMRecord
from hyperv2forklift.ovf.reader import OvfFile, OvfSummary
from hyperv2forklift.ovf.writer import write_descriptor


@pytest.fixture
def derived(fake_logger):
    return IdentifierGenerators.derived_only(logger=fake_logger)


@pytest.fixture
def descriptor(win2019_vm, disk_dir):
    return compile_descriptor(VMRecord.from_json(win2019_vm), disk_dir)


class TestDiscoverNetworks:
    def test_one_per_network_in_order(self, descriptor, derived, fake_logger):
        nets = discover_networks(descriptor, derived, logger=fake_logger)
        assert [n.name for n in nets] == ["LAN", "VM Network 2"]
        assert nets[0].id == derive_id("LAN", "LAN")
        assert all(n.destination_type == "pod" for n in nets)

    def test_pool_used_by_index(self, descriptor, fake_logger):
        ids = IdentifierGenerators.from_pools({"network": ["n-1"]}, logger=fake_logger)
        nets = discover_networks(descriptor, ids, "multus", logger=fake_logger)
        assert nets[0].id == "n-1"
        assert nets[1].id == derive_id("VM Network 2", "")
        assert nets[1].destination_type == "multus"

    def test_zero_networks_gives_default(self, derived, fake_logger):
        summary = OvfSummary(vm_name="vm", networks=(), files=())
        nets = discover_networks(summary, derived, logger=fake_logger)
        assert len(nets) == 1
        assert nets[0].name == DEFAULT_SOURCE_NETWORK_NAME
        assert nets[0].id == derive_id(DEFAULT_SOURCE_NETWORK_NAME, "")
        assert fake_logger.messages("warning")

    def test_zero_networks_uses_first_pool_entry(self, fake_logger):
        ids = IdentifierGenerators.from_pools({"network": ["mine"]}, logger=fake_logger)
        nets = discover_networks(OvfSummary("vm", (), ()), ids, logger=fake_logger)
        assert nets[0].id == "mine"

    def test_accepts_path(self, tmp_path, descriptor, derived, fake_logger):
        path = write_descriptor(descriptor, tmp_path / "win2019.ovf")
        assert [n.name for n in discover_networks(path, derived, logger=fake_logger)] == ["LAN", "VM Network 2"]


class TestDiscoverStorage:
    def test_from_references_sized_from_disk_dir(self, descriptor, disk_dir, derived, fake_logger):
        out = discover_storage(
            descriptor, [], derived, "nfs-csi", "/ova/win2019.ovf", disk_dir=disk_dir, logger=fake_logger
        )
        assert [s.file_name for s in out] == ["os.raw", "data.raw"]
        disk, key = disk_object("os.raw", 4096, 0, "/ova/win2019.ovf")
        assert out[0].id == derive_id(disk, key)
        assert out[0].destination_storage_class == "nfs-csi"

    def test_recorded_size_when_file_absent(self, derived, fake_logger):
        summary = OvfSummary("vm", (), (OvfFile("file1", "gone.raw", 77),))
        out = discover_storage(summary, [], derived, "sc", "/ova/vm.ovf", disk_dir="/nonexistent", logger=fake_logger)
        disk, key = disk_object("gone.raw", 77, 0, "/ova/vm.ovf")
        assert out[0].id == derive_id(disk, key)

    def test_disk_files_when_no_references(self, tmp_path, derived, fake_logger):
        f = tmp_path / "extra.raw"
        f.write_bytes(b"12345")
        out = discover_storage(OvfSummary("vm", (), ()), [f], derived, "sc", "/ova/vm.ovf", logger=fake_logger)
        disk, key = disk_object("extra.raw", 5, 0, "/ova/vm.ovf")
        assert out[0].id == derive_id(disk, key)

    def test_pool_first(self, descriptor, disk_dir, fake_logger):
        ids = IdentifierGenerators.from_pools({"storage": ["s-1"]}, logger=fake_logger)
        out = discover_storage(descriptor, [], ids, "sc", "/ova/win2019.ovf", disk_dir=disk_dir, logger=fake_logger)
        assert out[0].id == "s-1"
        assert out[1].id != "s-1"

    def test_zero_disks_is_mapping_error(self, derived, fake_logger):
        with pytest.raises(MappingError) as ei:
            discover_storage(OvfSummary("vm", (), ()), [], derived, "sc", "/ova/vm.ovf", logger=fake_logger)
        assert ei.value.code == 30
        assert ei.value.context == {"ovf": "/ova/vm.ovf"}


class TestDiscoverVmId:
    def test_pool(self, fake_logger):
        ids = IdentifierGenerators.from_pools({"vm": ["vm-id"]}, logger=fake_logger)
        assert discover_vm_id("win2019", "/ova/win2019.ovf", ids, logger=fake_logger) == "vm-id"

    def test_derived(self, derived, fake_logger):
        assert discover_vm_id("win2019", "/ova/x.ovf", derived, logger=fake_logger) == derive_id("win2019", "")
        assert derive_id("win2019", "") != fallback_vm_id("win2019", "/ova/x.ovf")


def test_disk_files_in(tmp_path):
    (tmp_path / "b.raw").write_bytes(b"")
    (tmp_path / "a.RAW").write_bytes(b"")
    (tmp_path / "c.vhdx").write_bytes(b"")
    assert [p.name for p in disk_files_in(tmp_path)] == ["a.RAW", "b.raw"]
    assert disk_files_in(tmp_path / "missing") == []
