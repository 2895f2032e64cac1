# SPDX-License-Identifier: LGPL-3.0-or-later
import pytest

from hyperv2forklift.core.exceptions import DescriptorError
from hyperv2forklift.ovf.compiler import compile_descriptor
from hyperv2forklift.ovf.model import VMRecord
from hyperv2forklift.ovf.reader import OvfFile, OvfSummary, read_descriptor
from hyperv2forklift.ovf.writer import write_descriptor


def test_reads_back_written_descriptor(tmp_path, win2019_vm, disk_dir):
    descriptor = compile_descriptor(VMRecord.from_json(win2019_vm), disk_dir)
    path = write_descriptor(descriptor, tmp_path / "win2019.ovf")

    summary = read_descriptor(path)

    assert summary.vm_name == "win2019"
    assert summary.networks == ("LAN", "VM Network 2")
    assert summary.files == (OvfFile("file1", "os.raw", 4096), OvfFile("file2", "data.raw", 1024))
    assert summary.path == path
    assert summary == OvfSummary.from_descriptor(descriptor, path)


def test_foreign_descriptor_without_sections(tmp_path):
    p = tmp_path / "other.ovf"
    p.write_text(
        '<Envelope xmlns="http://schemas.dmtf.org/ovf/envelope/2" '
        'xmlns:ovf="http://schemas.dmtf.org/ovf/envelope/2">'
        '<References><File ovf:id="f1" ovf:href="a.raw"/><File ovf:id="f2"/></References>'
        '<VirtualSystem ovf:id="from-id"/>'
        "</Envelope>",
        encoding="utf-8",
    )
    summary = read_descriptor(p)

    assert summary.vm_name == "from-id"
    assert summary.networks == ()
    assert summary.files == (OvfFile("f1", "a.raw", None),)


def test_malformed_xml(tmp_path):
    p = tmp_path / "bad.ovf"
    p.write_text("<Envelope><References>", encoding="utf-8")
    with pytest.raises(DescriptorError):
        read_descriptor(p)


def test_missing_file(tmp_path):
    with pytest.raises(DescriptorError) as ei:
        read_descriptor(tmp_path / "absent.ovf")
    assert ei.value.code == 20


def test_entity_expansion_refused(tmp_path):
    p = tmp_path / "bomb.ovf"
    p.write_text(
        '<?xml version="1.0"?>\n'
        '<!DOCTYPE Envelope [<!ENTITY a "aaaaaaaaaa"><!ENTITY b "&a;&a;&a;&a;&a;&a;&a;&a;&a;&a;">]>\n'
        "<Envelope><VirtualSystem>&b;</VirtualSystem></Envelope>",
        encoding="utf-8",
    )
    with pytest.raises(DescriptorError) as ei:
        read_descriptor(p)
    assert "unsafe" in ei.value.msg
