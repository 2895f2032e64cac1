# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# hyperv2forklift/cli/__init__.py
from .parser import COMMANDS, build_parser, parse_args_with_config

__all__ = ["COMMANDS", "build_parser", "parse_args_with_config"]
