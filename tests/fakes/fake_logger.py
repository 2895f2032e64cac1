# SPDX-License-Identifier: LGPL-3.0-or-later
class FakeLogger:
    def __init__(self):
        self.records = []

    def _log(self, level, msg, args):
        text = str(msg)
        if args:
            try:
                text = text % args
            except (TypeError, ValueError):
                text = f"{text} {args!r}"
        self.records.append((level, text))

    def info(self, msg, *a, **k): self._log("info", msg, a)
    def warning(self, msg, *a, **k): self._log("warning", msg, a)
    def error(self, msg, *a, **k): self._log("error", msg, a)
    def debug(self, msg, *a, **k): self._log("debug", msg, a)

    def log(self, level, msg, *a, **k):
        self._log(str(level), msg, a)

    def isEnabledFor(self, _lvl):
        return False

    def messages(self, level=None):
        return [m for lvl, m in self.records if level is None or lvl == level]
