# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# hyperv2forklift/ovf/guest_os.py
"""
Guest OS classification for the OVF OperatingSystemSection.

Hyper-V reports the guest as a free-text caption ("Microsoft Windows Server 2019
Standard") plus an architecture string ("64-bit"). The OVF consumer wants a
VMware-style osType token and a numeric CIM OS family id. Both mappings are plain
ordered tables so they can be reviewed and extended without touching code.
"""
from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Tuple

OTHER_GUEST = "otherGuest"
OTHER_FAMILY_ID = 1

ARCH_64 = "64-bit"

# Ordered (needles, 64-bit token, 32-bit token). First match wins, so more specific
# releases must precede the generic patterns they contain.
OS_TYPE_RULES: Tuple[Tuple[Tuple[str, ...], str, str], ...] = (
    # Windows Server
    (("windows server 2022",), "windows2022srv_64Guest", "windows2022srv_guest"),
    (("windows server 2019",), "windows2019srv_64Guest", "windows2019srv_guest"),
    (("windows server 2016",), "windows2016srv_64Guest", "windows2016srv_guest"),
    (("windows server 2012 r2",), "windows8srv_64Guest", "windows8srv_guest"),
    (("windows server 2012",), "windows8srv_64Guest", "windows8srv_guest"),
    (("windows server 2008 r2",), "windows7srv_64Guest", "windows7srv_guest"),
    # Windows desktop
    (("windows 11",), "windows11_64Guest", "windows11Guest"),
    (("windows 10",), "windows10_64Guest", "windows10Guest"),
    (("windows 8.1",), "windows8_64Guest", "windows8Guest"),
    (("windows 8",), "windows8_64Guest", "windows8Guest"),
    (("windows 7",), "windows7_64Guest", "windows7Guest"),
    (("windows vista",), "vista_64Guest", "vistaGuest"),
    # Linux
    (("ubuntu",), "ubuntu64Guest", "ubuntuGuest"),
    (("debian",), "debian10_64Guest", "debian10Guest"),
    (("centos",), "centos64Guest", "centosGuest"),
    (("red hat enterprise linux", "rhel"), "rhel8_64Guest", "rhel7Guest"),
    (("suse",), "sles_64Guest", "slesGuest"),
    (("fedora",), "fedora64Guest", "fedoraGuest"),
    (("oracle linux",), "oracleLinux64Guest", "oracleLinuxGuest"),
    (("linux",), "otherLinux64Guest", "otherLinuxGuest"),
)

# osType token -> OVF OperatingSystemSection ovf:id. Order matters for the
# containment fallback in os_family_id().
OS_FAMILY_IDS: Dict[str, int] = {
    "otherGuest": 1,
    "macosGuest": 2,
    "attunixGuest": 3,
    "dguxGuest": 4,
    "windowsxpGuest": 5,
    "windows2000Guest": 6,
    "windows2003Guest": 7,
    "vistaGuest": 8,
    "windows7Guest": 9,
    "windows8Guest": 10,
    "windows81Guest": 11,
    "windows10Guest": 103,
    "windows10_64Guest": 103,
    "windows11Guest": 103,
    "windows11_64Guest": 103,
    "windows7srv_guest": 13,
    "windows7srv_64Guest": 13,
    "windows8srv_guest": 112,
    "windows8srv_64Guest": 112,
    "windows2016srv_guest": 15,
    "windows2016srv_64Guest": 15,
    "windows2019srv_guest": 94,
    "windows2019srv_64Guest": 94,
    "windows2022srv_guest": 17,
    "windows2022srv_64Guest": 17,
    "rhel7Guest": 20,
    "rhel8_64Guest": 21,
    "ubuntuGuest": 22,
    "ubuntu64Guest": 22,
    "centosGuest": 24,
    "centos64Guest": 24,
    "debian10Guest": 26,
    "debian10_64Guest": 26,
    "fedoraGuest": 27,
    "fedora64Guest": 27,
    "slesGuest": 29,
    "sles_64Guest": 30,
    "solaris10Guest": 31,
    "solaris11Guest": 32,
    "freebsd11Guest": 33,
    "freebsd12Guest": 34,
    "oracleLinuxGuest": 35,
    "oracleLinux64Guest": 36,
    "otherLinuxGuest": 101,
    "otherLinux64Guest": 101,
}

_FAMILY_BY_LOWER: Dict[str, int] = {k.lower(): v for k, v in OS_FAMILY_IDS.items()}


def classify(caption: Optional[str], architecture: Optional[str]) -> str:
    """Map a guest caption + architecture to an osType token. Never fails."""
    cap = (caption or "").lower()
    is_64 = (architecture or "").lower() == ARCH_64
    for needles, tok64, tok32 in OS_TYPE_RULES:
        if any(n in cap for n in needles):
            return tok64 if is_64 else tok32
    return OTHER_GUEST


def os_family_id(os_type: Optional[str]) -> int:
    """
    osType token -> numeric OVF OS id.

    Exact (case-insensitive) lookup first, then the first table key contained in
    the token, then 1 ("other").
    """
    key = (os_type or "").lower()
    if key in _FAMILY_BY_LOWER:
        return _FAMILY_BY_LOWER[key]
    if key:
        for known, fid in _FAMILY_BY_LOWER.items():
            if known in key:
                return fid
    return OTHER_FAMILY_ID


def describe(caption: Optional[str], architecture: Optional[str]) -> str:
    return f"{caption or ''} ({architecture or ''})"


def parse_guest_os_info(data: Any) -> Dict[str, Any]:
    """
    Normalize guest OS info as PowerShell emits it.

    `Get-CimInstance Win32_OperatingSystem | ConvertTo-Json` yields an object, but
    via Invoke-Command it can come back as a one-element list.
    """
    if isinstance(data, Mapping):
        return dict(data)
    if isinstance(data, list):
        if data and isinstance(data[0], Mapping):
            return dict(data[0])
        raise ValueError(f"unexpected guest OS list format: {data!r}")
    raise ValueError(f"unexpected guest OS info type: {type(data).__name__}")
