# SPDX-License-Identifier: LGPL-3.0-or-later
# hyperv2forklift/ovf/reader.py
from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple, Union

from defusedxml import DefusedXmlException
from defusedxml.ElementTree import parse as safe_parse

from ..core.exceptions import DescriptorError
from .model import Descriptor

DEFAULT_OVF_NS = "http://schemas.dmtf.org/ovf/envelope/1"


@dataclass(frozen=True)
class OvfFile:
    id: str
    href: str
    size: Optional[int] = None


@dataclass(frozen=True)
class OvfSummary:
    """What the mapping step needs back out of a written descriptor."""
    vm_name: str
    networks: Tuple[str, ...]
    files: Tuple[OvfFile, ...]
    path: Optional[Path] = None

    @classmethod
    def from_descriptor(cls, descriptor: Descriptor, path: Optional[Path] = None) -> "OvfSummary":
        return cls(
            vm_name=descriptor.system.name,
            networks=tuple(n.name for n in descriptor.networks),
            files=tuple(OvfFile(id=f.id, href=f.href, size=f.size) for f in descriptor.files),
            path=path,
        )


def _attr(el: ET.Element, ns_uri: str, name: str) -> Optional[str]:
    return el.get(f"{{{ns_uri}}}{name}") or el.get(name)


def _to_int(s: Optional[str]) -> Optional[int]:
    if s is None:
        return None
    try:
        return int(s.strip())
    except ValueError:
        return None


def read_descriptor(path: Union[str, Path], *, logger: Optional[logging.Logger] = None) -> OvfSummary:
    """
    Parse a descriptor written to disk and list its networks and file references.

    Missing sections give empty tuples; only unreadable or malformed XML fails.
    """
    log = logger or logging.getLogger(__name__)
    path = Path(path)

    try:
        tree = safe_parse(str(path))
    except DefusedXmlException as e:
        raise DescriptorError(code=20, msg=f"Refusing unsafe OVF XML: {path}: {e}", cause=e) from e
    except ET.ParseError as e:
        raise DescriptorError(code=20, msg=f"Failed to parse OVF XML: {path}: {e}", cause=e) from e
    except OSError as e:
        raise DescriptorError(code=20, msg=f"Failed to read OVF XML: {path}: {e}", cause=e) from e

    root = tree.getroot()

    # Detect the envelope namespace from the root tag, fall back to OVF 1.x.
    ns_uri = DEFAULT_OVF_NS
    if root.tag.startswith("{") and "}" in root.tag:
        ns_uri = root.tag.split("}", 1)[0][1:]
    ns = {"ovf": ns_uri}

    files: List[OvfFile] = []
    for f in root.findall("./ovf:References/ovf:File", ns):
        fid = _attr(f, ns_uri, "id")
        href = _attr(f, ns_uri, "href")
        if not fid or not href:
            log.warning("OVF %s: skipping <File> without id/href", path)
            continue
        files.append(OvfFile(id=fid, href=href, size=_to_int(_attr(f, ns_uri, "size"))))

    networks: List[str] = []
    for n in root.findall("./ovf:NetworkSection/ovf:Network", ns):
        name = _attr(n, ns_uri, "name")
        if name:
            networks.append(name)

    vm_name = ""
    vs = root.find("./ovf:VirtualSystem", ns)
    if vs is not None:
        name_el = vs.find("ovf:Name", ns)
        if name_el is not None and name_el.text:
            vm_name = name_el.text.strip()
        else:
            vm_name = _attr(vs, ns_uri, "id") or ""

    log.debug("OVF %s: vm=%r networks=%d files=%d", path, vm_name, len(networks), len(files))
    return OvfSummary(vm_name=vm_name, networks=tuple(networks), files=tuple(files), path=path)


__all__ = [
    "OvfFile",
    "OvfSummary",
    "read_descriptor",
]
