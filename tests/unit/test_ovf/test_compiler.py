# SPDX-License-Identifier: LGPL-3.0-or-later
from pathlib import Path

import pytest

from hyperv2forklift.core.exceptions import DescriptorError
from hyperv2forklift.ovf.compiler import (
    compile_descriptor,
    default_network_name,
    raw_file_name,
)
from hyperv2forklift.ovf.model import (
    CpuItem,
    DiskItem,
    EthernetItem,
    IdeControllerItem,
    MemoryItem,
    VMRecord,
)


def _sizes(mapping):
    def resolver(path: Path) -> int:
        try:
            return mapping[path.name]
        except KeyError:
            raise FileNotFoundError(path) from None

    return resolver


class TestRawFileName:
    @pytest.mark.parametrize(
        "src,expected",
        [
            ("C:\\Hyper-V\\disks\\os.vhdx", "os.raw"),
            ("/var/lib/disks/data.vhd", "data.raw"),
            ("noext", "noext.raw"),
            ("C:\\a.b\\disk.v2.vhdx", "disk.v2.raw"),
        ],
    )
    def test_names(self, src, expected):
        assert raw_file_name(src) == expected


def test_default_network_name_is_one_based():
    assert default_network_name(0) == "VM Network 1"


class TestCompileDescriptor:
    def test_win2019(self, win2019_vm, disk_dir):
        d = compile_descriptor(VMRecord.from_json(win2019_vm), disk_dir)

        assert [f.id for f in d.files] == ["file1", "file2"]
        assert [f.href for f in d.files] == ["os.raw", "data.raw"]
        assert [f.size for f in d.files] == [4096, 1024]
        assert [k.disk_id for k in d.disks] == ["vmdisk1", "vmdisk2"]
        assert [k.capacity for k in d.disks] == [4096, 1024]
        assert [n.name for n in d.networks] == ["LAN", "VM Network 2"]
        assert d.networks[1].description == "Network interface 2"

        osec = d.system.operating_system
        assert osec.os_type == "windows2019srv_64Guest"
        assert osec.id == 94
        assert osec.description == "Microsoft Windows Server 2019 Standard (64-bit)"
        assert d.system.id == d.system.name == "win2019"

    def test_item_order_and_ids(self, win2019_vm, disk_dir):
        items = compile_descriptor(VMRecord.from_json(win2019_vm), disk_dir).system.items

        assert [type(i) for i in items] == [
            CpuItem,
            MemoryItem,
            IdeControllerItem,
            DiskItem,
            DiskItem,
            EthernetItem,
            EthernetItem,
        ]
        assert [i.instance_id for i in items] == list(range(1, 8))
        assert items[0].quantity == 4
        assert items[1].quantity_mb == 8192
        assert all(i.parent == 3 for i in items if isinstance(i, DiskItem))
        assert [i.address_on_parent for i in items if isinstance(i, DiskItem)] == [0, 1]
        assert items[-1].connection == "VM Network 2"

    def test_minimal_vm(self):
        d = compile_descriptor(VMRecord.from_json({}), "/nonexistent", _sizes({}))
        assert d.files == () and d.disks == () and d.networks == ()
        assert len(d.system.items) == 3
        assert d.system.operating_system.os_type == "otherGuest"
        assert d.system.operating_system.id == 1

    def test_missing_disk_fails_whole_compile(self, win2019_vm):
        with pytest.raises(DescriptorError) as ei:
            compile_descriptor(VMRecord.from_json(win2019_vm), "/disks", _sizes({"os.raw": 10}))
        assert ei.value.code == 20
        assert ei.value.context["source"].endswith("data.vhdx")
        assert "data.raw" in ei.value.msg
        assert isinstance(ei.value.cause, FileNotFoundError)

    def test_numbering_keeps_source_index(self):
        vm = VMRecord.from_json({"HardDrives": ["skip", {"Path": "b.vhdx"}]})
        d = compile_descriptor(vm, "/d", _sizes({"b.raw": 5}))
        assert d.files[0].id == "file2"
        assert d.disks[0].disk_id == "vmdisk2"

    def test_deterministic(self, win2019_vm, disk_dir):
        vm = VMRecord.from_json(win2019_vm)
        assert compile_descriptor(vm, disk_dir) == compile_descriptor(vm, disk_dir)
