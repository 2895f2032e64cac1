# SPDX-License-Identifier: LGPL-3.0-or-later
import json
import logging

import pytest

from hyperv2forklift.core.logger import TRACE, Log, c


class TestLevelFlags:
    @pytest.mark.parametrize(
        "verbose,quiet,level",
        [
            (0, 0, logging.INFO),
            (1, 0, logging.INFO),
            (2, 0, logging.DEBUG),
            (3, 0, TRACE),
            (0, 1, logging.WARNING),
            (3, 2, logging.ERROR),
        ],
    )
    def test_level_from_flags(self, verbose, quiet, level):
        assert Log._level_from_flags(verbose, quiet) == level


class TestSetup:
    def test_json_logs_emit_ndjson(self, capsys):
        logger = Log.setup(0, json_logs=True, logger_name="hyperv2forklift.test.json")
        logger.info("hello %s", "world")

        err = capsys.readouterr().err.strip().splitlines()
        rec = json.loads(err[-1])
        assert rec["msg"] == "hello world"
        assert rec["level"] == "INFO"

    def test_step_carries_context(self, capsys):
        logger = Log.setup(0, json_logs=True, logger_name="hyperv2forklift.test.ctx")
        Log.step(logger, "compile", vm="win2019")

        rec = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert "compile" in rec["msg"]
        assert rec["ctx"] == {"vm": "win2019"}

    def test_log_file_written(self, tmp_path):
        log_file = tmp_path / "logs" / "run.log"
        logger = Log.setup(2, str(log_file), logger_name="hyperv2forklift.test.file")
        logger.debug("to the file")
        for h in logger.handlers:
            h.flush()

        assert "to the file" in log_file.read_text(encoding="utf-8")

    def test_setup_replaces_handlers(self):
        name = "hyperv2forklift.test.repeat"
        Log.setup(0, logger_name=name)
        logger = Log.setup(0, logger_name=name)
        assert len(logger.handlers) == 1


def test_bind_merges_context():
    adapter = Log.bind(logging.getLogger("hyperv2forklift.test.bind"), vm="a").bind(stage="plan")
    _msg, kwargs = adapter.process("m", {})
    assert kwargs["extra"]["ctx"] == {"vm": "a", "stage": "plan"}


def test_c_disabled_returns_text():
    assert c("plain", "red", enable=False) == "plain"
    assert c("plain") == "plain"
