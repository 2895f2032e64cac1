# SPDX-License-Identifier: LGPL-3.0-or-later
import json
import tempfile
import unittest
from pathlib import Path

from hyperv2forklift.core.utils import U
from hyperv2forklift.core.xml_utils import xml_escape


class TestUtilsFileOperations(unittest.TestCase):
    def test_ensure_dir_creates_directory(self):
        with tempfile.TemporaryDirectory() as td:
            new_dir = Path(td) / "subdir" / "nested"

            U.ensure_dir(new_dir)

            self.assertTrue(new_dir.is_dir())

    def test_ensure_dir_handles_existing(self):
        with tempfile.TemporaryDirectory() as td:
            U.ensure_dir(Path(td))
            U.ensure_dir(Path(td))
            self.assertTrue(Path(td).is_dir())


class TestSafeName(unittest.TestCase):
    def test_keeps_allowed_characters(self):
        self.assertEqual(U.safe_name("win2019_db-01.prod"), "win2019_db-01.prod")

    def test_replaces_separators_and_spaces(self):
        self.assertEqual(U.safe_name("My VM/01"), "My-VM-01")

    def test_empty_falls_back(self):
        self.assertEqual(U.safe_name("   "), "vm")
        self.assertEqual(U.safe_name("///", default="x"), "x")


class TestJsonDump(unittest.TestCase):
    def test_sorted_and_stringifies_paths(self):
        out = U.json_dump({"b": Path("/tmp/x"), "a": 1})
        self.assertEqual(json.loads(out), {"a": 1, "b": "/tmp/x"})
        self.assertLess(out.index('"a"'), out.index('"b"'))


class TestXmlEscape(unittest.TestCase):
    def test_attribute_escape(self):
        self.assertEqual(xml_escape('a<b & "c"'), "a&lt;b &amp; &quot;c&quot;")

    def test_apostrophe_and_non_string(self):
        self.assertEqual(xml_escape("it's"), "it&apos;s")
        self.assertEqual(xml_escape(4096), "4096")
