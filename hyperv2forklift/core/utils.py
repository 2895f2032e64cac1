# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# hyperv2forklift/core/utils.py
from __future__ import annotations

import json
from pathlib import Path
from typing import Any


class U:
    @staticmethod
    def ensure_dir(p: Path) -> None:
        p.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def json_dump(obj: Any) -> str:
        return json.dumps(obj, indent=2, sort_keys=True, default=str)

    @staticmethod
    def safe_name(s: str, default: str = "vm") -> str:
        """
        File-name friendly component for per-VM artifacts:
          - allow: A-Za-z0-9._-
          - everything else => '-'
        """
        out = "".join(ch if (ch.isalnum() or ch in "._-") else "-" for ch in (s or "").strip())
        return out.strip("-") or default
