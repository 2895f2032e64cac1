# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# hyperv2forklift/cli/help_texts.py
from __future__ import annotations

# Pure help text for the argparse epilog. No imports beyond __future__.

YAML_EXAMPLE = r"""# hyperv2forklift configuration (YAML)
#
# Run:
#   hyperv2forklift --config migrate.yaml
#
# Merge several configs (later overrides earlier):
#   hyperv2forklift --config base.yaml --config cluster.yaml --cmd plan
#
# Precedence: CLI flag > environment variable > config file > built-in default.
#
# cmd: plan                  # ovf | plan | migrate | monitor
# vm_json: ./vm.json         # Get-VM ... | ConvertTo-Json output (object or list)
# disk_dir: ./disks          # where the converted <name>.raw disks are staged
# output_dir: ./out          # .ovf + Forklift YAML documents
#
# namespace: openshift-mtv                 # env NAMESPACE
# nfs_url: nfs.example.com:/exports/ova    # env OVA_PROVIDER_NFS_SERVER_PATH
# storage_class: nfs-csi                   # env STORAGE_CLASS
# provider_ovf_dir: /ova                   # how the OVA provider sees output_dir
#
# provider_name: ova-provider-test
# secret_name: ova-provider-lbmst
# plan_name: ovatohyper
# migration_name: hyperv-demo
# target_namespace: ""
# insecure_skip_verify: false
#
# poll_interval_s: 10
# migration_timeout_s: 900
# plan_timeout_s: 300
#
# identifier_pools:          # omit for the built-in pools; {} derives every id
#   network: [ ... ]
#   storage: [ ... ]
#   vm: [ ... ]
"""

COMMANDS_SUMMARY = r"""  ovf      compile each VM record into <name>.ovf
  plan     ovf + network/storage maps, plan, migration, secret and provider YAML
  migrate  plan + kubectl apply in dependency order, then follow each migration
  monitor  follow an existing migration (--migration-name) until it finishes
"""
