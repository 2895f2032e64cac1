# SPDX-License-Identifier: LGPL-3.0-or-later
import json
import os
import sys
from pathlib import Path

import pytest

_THIS_DIR = Path(__file__).resolve().parent
_REPO_ROOT = _THIS_DIR.parent

for _p in (_REPO_ROOT, _THIS_DIR):
    if str(_p) not in sys.path:
        sys.path.insert(0, str(_p))

os.environ.setdefault("PYTHONPATH", str(_REPO_ROOT))

from fakes.fake_clock import FakeClock  # noqa: E402
from fakes.fake_logger import FakeLogger  # noqa: E402


WIN2019_VM = {
    "Name": "win2019",
    "ProcessorCount": 4,
    "MemoryStartup": 8589934592,
    "HardDrives": [
        {"Path": "C:\\Hyper-V\\win2019\\os.vhdx"},
        {"Path": "C:\\Hyper-V\\win2019\\data.vhdx"},
    ],
    "NetworkAdapters": [{"Name": "LAN"}, {"Name": ""}],
    "GuestOSInfo": {
        "Caption": "Microsoft Windows Server 2019 Standard",
        "Version": "10.0.17763",
        "OSArchitecture": "64-bit",
    },
}


@pytest.fixture
def fake_logger():
    return FakeLogger()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def win2019_vm():
    return json.loads(json.dumps(WIN2019_VM))


@pytest.fixture
def disk_dir(tmp_path):
    """Staged raw disks for WIN2019_VM."""
    d = tmp_path / "disks"
    d.mkdir()
    (d / "os.raw").write_bytes(b"\0" * 4096)
    (d / "data.raw").write_bytes(b"\0" * 1024)
    return d
