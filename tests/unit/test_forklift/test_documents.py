# SPDX-License-Identifier: LGPL-3.0-or-later
import base64

import yaml

from hyperv2forklift.forklift import documents as docs
from hyperv2forklift.forklift.mapping import NetworkMapping, StorageMapping


def _load(doc):
    return yaml.safe_load(docs.dump_document(doc))


class TestSecret:
    def test_base64_data_and_labels(self):
        d = _load(docs.secret_document("ova-secret", "mtv", "nfs.example.com:/ova", insecure_skip_verify=True))

        assert d["apiVersion"] == "v1"
        assert d["kind"] == "Secret"
        assert d["type"] == "Opaque"
        assert d["metadata"]["labels"] == {
            "createdForProviderType": "ova",
            "createdForResourceType": "providers",
        }
        assert base64.b64decode(d["data"]["url"]).decode() == "nfs.example.com:/ova"
        assert base64.b64decode(d["data"]["insecureSkipVerify"]).decode() == "true"


class TestProviderAndMaps:
    def test_provider(self):
        d = _load(docs.provider_document("ova-provider", "mtv", "nfs:/ova", "ova-secret"))
        assert d["apiVersion"] == docs.FORKLIFT_API
        assert d["spec"] == {
            "secret": {"name": "ova-secret", "namespace": "mtv"},
            "type": "ova",
            "url": "nfs:/ova",
        }

    def test_network_map(self):
        d = _load(
            docs.network_map_document(
                "nm", "mtv", "ova-provider", "host", [NetworkMapping("id1", "LAN"), NetworkMapping("id2", "DMZ", "multus")]
            )
        )
        assert d["kind"] == "NetworkMap"
        assert d["spec"]["map"] == [
            {"source": {"id": "id1", "name": "LAN"}, "destination": {"type": "pod"}},
            {"source": {"id": "id2", "name": "DMZ"}, "destination": {"type": "multus"}},
        ]
        assert d["spec"]["provider"]["source"] == {"name": "ova-provider", "namespace": "mtv"}
        assert d["spec"]["provider"]["destination"] == {"name": "host", "namespace": "mtv"}

    def test_storage_map(self):
        d = _load(docs.storage_map_document("sm", "mtv", "p", "host", [StorageMapping("s1", "nfs-csi", "os.raw")]))
        assert d["spec"]["map"] == [{"source": {"id": "s1"}, "destination": {"storageClass": "nfs-csi"}}]


class TestPlanAndMigration:
    def test_plan(self):
        d = _load(docs.plan_document("plan", "mtv", "p", "host", "nm", "sm", [("vm-id", "win2019")]))
        spec = d["spec"]

        assert d["kind"] == "Plan"
        assert spec["map"]["network"]["name"] == "nm"
        assert spec["map"]["storage"]["kind"] == "StorageMap"
        assert spec["provider"]["source"]["kind"] == "Provider"
        assert spec["targetNamespace"] == "mtv"
        assert spec["pvcNameTemplateUseGenerateName"] is True
        assert spec["skipGuestConversion"] is False
        assert spec["warm"] is False
        assert spec["migrateSharedDisks"] is True
        assert spec["vms"] == [{"id": "vm-id", "name": "win2019"}]

    def test_plan_target_namespace(self):
        d = docs.plan_document("plan", "mtv", "p", "host", "nm", "sm", [], "vms")
        assert d["spec"]["targetNamespace"] == "vms"

    def test_migration(self):
        d = _load(docs.migration_document("mig", "mtv", "plan"))
        assert d["kind"] == "Migration"
        assert d["spec"] == {"plan": {"name": "plan", "namespace": "mtv"}}


def test_dump_keeps_builder_key_order():
    text = docs.dump_document(docs.migration_document("mig", "mtv", "plan"))
    assert text.index("apiVersion") < text.index("kind") < text.index("metadata") < text.index("spec")


def test_write_document(tmp_path):
    p = docs.write_document(docs.migration_document("m", "ns", "p"), tmp_path / "out" / "m.yaml")
    assert yaml.safe_load(p.read_text(encoding="utf-8"))["metadata"]["name"] == "m"
