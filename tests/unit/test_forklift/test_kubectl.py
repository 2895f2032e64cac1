# SPDX-License-Identifier: LGPL-3.0-or-later
import subprocess
import unittest
from unittest.mock import patch

from hyperv2forklift.core.exceptions import ClusterError
from hyperv2forklift.forklift import kubectl


def _done(rc=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(args=[], returncode=rc, stdout=stdout, stderr=stderr)


class TestRunKubectl(unittest.TestCase):
    @patch("hyperv2forklift.forklift.kubectl.subprocess.run")
    def test_apply_file(self, mock_run):
        mock_run.return_value = _done(stdout="migration.forklift.konveyor.io/m created\n")

        out = kubectl.apply_file("/out/m.yaml", binary="oc")

        self.assertIn("created", out)
        cmd = mock_run.call_args[0][0]
        self.assertEqual(cmd, ["oc", "apply", "-f", "/out/m.yaml"])

    @patch("hyperv2forklift.forklift.kubectl.subprocess.run")
    def test_get_resource_parses_json(self, mock_run):
        mock_run.return_value = _done(stdout='{"kind": "Migration", "status": {}}')

        obj = kubectl.get_resource("migration", "m", "mtv")

        self.assertEqual(obj["kind"], "Migration")
        self.assertEqual(mock_run.call_args[0][0], ["kubectl", "get", "migration", "m", "-n", "mtv", "-o", "json"])

    @patch("hyperv2forklift.forklift.kubectl.subprocess.run")
    def test_nonzero_exit(self, mock_run):
        mock_run.return_value = _done(rc=1, stderr='Error from server (NotFound): migrations "m" not found')

        with self.assertRaises(ClusterError) as cm:
            kubectl.get_resource("migration", "m", "mtv")
        self.assertEqual(cm.exception.code, 40)
        self.assertIn("NotFound", cm.exception.msg)
        self.assertEqual(cm.exception.context, {"rc": 1})
        self.assertEqual(mock_run.call_count, 1)

    @patch("hyperv2forklift.forklift.kubectl.subprocess.run", side_effect=FileNotFoundError("kubectl"))
    def test_missing_binary(self, _mock_run):
        with self.assertRaises(ClusterError) as cm:
            kubectl.run_kubectl(["version"])
        self.assertEqual(cm.exception.code, 40)
        self.assertIsInstance(cm.exception.cause, FileNotFoundError)
        self.assertIsInstance(cm.exception.__cause__, FileNotFoundError)

    @patch(
        "hyperv2forklift.forklift.kubectl.subprocess.run",
        side_effect=subprocess.TimeoutExpired(cmd="kubectl", timeout=1),
    )
    def test_timeout(self, _mock_run):
        with self.assertRaises(ClusterError):
            kubectl.run_kubectl(["get", "pods"], timeout_s=1)

    @patch("hyperv2forklift.forklift.kubectl.subprocess.run")
    def test_bad_json(self, mock_run):
        mock_run.return_value = _done(stdout="not json")
        with self.assertRaises(ClusterError):
            kubectl.run_kubectl_json(["get", "plan", "p"])

    @patch("hyperv2forklift.forklift.kubectl.subprocess.run")
    def test_non_object_json(self, mock_run):
        mock_run.return_value = _done(stdout="[]")
        with self.assertRaises(ClusterError):
            kubectl.get_resource("plan", "p", "mtv")

    @patch("hyperv2forklift.forklift.kubectl.subprocess.run")
    def test_resource_fetcher_fetches_each_call(self, mock_run):
        mock_run.return_value = _done(stdout="{}")
        fetch = kubectl.resource_fetcher("plan", "p", "mtv")

        fetch()
        fetch()

        self.assertEqual(mock_run.call_count, 2)
