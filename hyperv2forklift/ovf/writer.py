# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# hyperv2forklift/ovf/writer.py

from __future__ import annotations

from pathlib import Path
from typing import List, Union

from ..core.xml_utils import xml_escape as _xml
from .model import (
    CpuItem,
    Descriptor,
    DiskItem,
    EthernetItem,
    HardwareItem,
    IdeControllerItem,
    MemoryItem,
)

XML_HEADER = '<?xml version="1.0" encoding="UTF-8"?>'
INDENT = "  "

NS_ENVELOPE = "http://schemas.dmtf.org/ovf/envelope/1"
NS_CIM = "http://schemas.dmtf.org/wbem/wscim/1/common"
NS_RASD = "http://schemas.dmtf.org/wbem/wscim/1/cim-schema/2/CIM_ResourceAllocationSettingData"
NS_VMW = "http://www.vmware.com/schema/ovf"
NS_VSSD = "http://schemas.dmtf.org/wbem/wscim/1/cim-schema/2/CIM_VirtualSystemSettingData"
NS_XSI = "http://www.w3.org/2001/XMLSchema-instance"

# Declaration order on the root element is part of the output contract.
NAMESPACES = (
    ("xmlns", NS_ENVELOPE),
    ("xmlns:cim", NS_CIM),
    ("xmlns:ovf", NS_ENVELOPE),
    ("xmlns:rasd", NS_RASD),
    ("xmlns:vmw", NS_VMW),
    ("xmlns:vssd", NS_VSSD),
    ("xmlns:xsi", NS_XSI),
)


def _attrs(pairs) -> str:
    return " ".join(f'{k}="{_xml(v)}"' for k, v in pairs)


def _leaf(depth: int, tag: str, text: object) -> str:
    return f"{INDENT * depth}<{tag}>{_xml(text)}</{tag}>"


def _item_fields(item: HardwareItem):
    """rasd children for one item, already in CIM (alphabetical) order."""
    if isinstance(item, CpuItem):
        return [
            ("AllocationUnits", "hertz * 10^6"),
            ("Description", "Number of virtual CPUs"),
            ("ElementName", item.element_name),
            ("InstanceID", item.instance_id),
            ("ResourceType", item.resource_type),
            ("VirtualQuantity", item.quantity),
        ]
    if isinstance(item, MemoryItem):
        return [
            ("AllocationUnits", item.allocation_units),
            ("Description", "Memory Size"),
            ("ElementName", item.element_name),
            ("InstanceID", item.instance_id),
            ("ResourceType", item.resource_type),
            ("VirtualQuantity", item.quantity_mb),
        ]
    if isinstance(item, IdeControllerItem):
        return [
            ("Address", item.address),
            ("Description", "IDE Controller"),
            ("ElementName", item.element_name),
            ("InstanceID", item.instance_id),
            ("ResourceType", item.resource_type),
        ]
    if isinstance(item, DiskItem):
        return [
            ("AddressOnParent", item.address_on_parent),
            ("Description", "Hard Disk"),
            ("ElementName", item.element_name),
            ("HostResource", item.host_resource),
            ("InstanceID", item.instance_id),
            ("Parent", item.parent),
            ("ResourceType", item.resource_type),
        ]
    if isinstance(item, EthernetItem):
        return [
            ("AutomaticAllocation", "true" if item.automatic_allocation else "false"),
            ("Connection", item.connection),
            ("Description", item.description),
            ("ElementName", item.element_name),
            ("InstanceID", item.instance_id),
            ("ResourceSubType", item.resource_subtype),
            ("ResourceType", item.resource_type),
        ]
    raise TypeError(f"unsupported hardware item: {type(item).__name__}")


def render_descriptor(descriptor: Descriptor) -> str:
    """
    Serialize to OVF XML text.

    Output is a pure function of the descriptor: fixed namespace order, fixed
    2-space indent, fixed child order, trailing newline.
    """
    vs = descriptor.system
    osec = vs.operating_system
    lines: List[str] = [XML_HEADER]

    lines.append(f"<Envelope {_attrs(NAMESPACES)}>")

    if descriptor.files:
        lines.append(f"{INDENT}<References>")
        for f in descriptor.files:
            lines.append(f"{INDENT * 2}<File {_attrs([('ovf:href', f.href), ('ovf:id', f.id), ('ovf:size', f.size)])}/>")
        lines.append(f"{INDENT}</References>")
    else:
        lines.append(f"{INDENT}<References/>")

    lines.append(f"{INDENT}<DiskSection>")
    lines.append(_leaf(2, "Info", "List of the virtual disks"))
    for d in descriptor.disks:
        a = _attrs(
            [
                ("ovf:capacity", d.capacity),
                ("ovf:capacityAllocationUnits", d.capacity_units),
                ("ovf:diskId", d.disk_id),
                ("ovf:fileRef", d.file_ref),
                ("ovf:format", d.format),
            ]
        )
        lines.append(f"{INDENT * 2}<Disk {a}/>")
    lines.append(f"{INDENT}</DiskSection>")

    lines.append(f"{INDENT}<NetworkSection>")
    lines.append(_leaf(2, "Info", "The list of logical networks"))
    for n in descriptor.networks:
        lines.append(f"{INDENT * 2}<Network {_attrs([('ovf:name', n.name)])}>")
        lines.append(_leaf(3, "Description", n.description))
        lines.append(f"{INDENT * 2}</Network>")
    lines.append(f"{INDENT}</NetworkSection>")

    lines.append(f"{INDENT}<VirtualSystem {_attrs([('ovf:id', vs.id)])}>")
    lines.append(_leaf(2, "Info", "A Virtual system"))
    lines.append(_leaf(2, "Name", vs.name))

    lines.append(f"{INDENT * 2}<OperatingSystemSection {_attrs([('ovf:id', osec.id), ('vmw:osType', osec.os_type)])}>")
    lines.append(_leaf(3, "Info", osec.info))
    lines.append(_leaf(3, "Description", osec.description))
    lines.append(f"{INDENT * 2}</OperatingSystemSection>")

    lines.append(f"{INDENT * 2}<VirtualHardwareSection>")
    lines.append(_leaf(3, "Info", "Virtual hardware requirements"))
    lines.append(f"{INDENT * 3}<System>")
    lines.append(_leaf(4, "vssd:ElementName", "Virtual Hardware Family"))
    lines.append(_leaf(4, "vssd:InstanceID", 0))
    lines.append(_leaf(4, "vssd:VirtualSystemIdentifier", vs.name))
    lines.append(_leaf(4, "vssd:VirtualSystemType", vs.system_type))
    lines.append(f"{INDENT * 3}</System>")
    for item in vs.items:
        lines.append(f"{INDENT * 3}<Item>")
        for tag, value in _item_fields(item):
            lines.append(_leaf(4, f"rasd:{tag}", value))
        lines.append(f"{INDENT * 3}</Item>")
    lines.append(f"{INDENT * 2}</VirtualHardwareSection>")

    lines.append(f"{INDENT}</VirtualSystem>")
    lines.append("</Envelope>")
    return "\n".join(lines) + "\n"


def write_descriptor(descriptor: Descriptor, path: Union[str, Path], *, overwrite: bool = True) -> Path:
    path = Path(path)
    if path.exists() and not overwrite:
        raise FileExistsError(f"descriptor already exists: {path}")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_descriptor(descriptor), encoding="utf-8")
    return path


__all__ = [
    "NAMESPACES",
    "render_descriptor",
    "write_descriptor",
]
