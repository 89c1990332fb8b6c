# wb_platform/orchestrator/_logging.py
# Progress events for run observers (API status, tests) next to the regular log lines.
# Copyright (c) 2025-2026 WatchBridge contributors
from __future__ import annotations

from typing import Any, Callable

from _logging import log as _root_log

ProgressFn = Callable[[str, dict[str, Any]], None]


class Emitter:
    def __init__(self, cb: ProgressFn | None, module: str = "SYNC"):
        self.cb = cb
        self.log = _root_log.child(module)

    def emit(self, event: str, **data: Any) -> None:
        if not self.cb:
            return
        try:
            self.cb(event, dict(data))
        except Exception as e:
            # an observer must never break the run
            self.log.debug(f"progress observer failed on {event}: {e}")

    def info(self, msg: str, **data: Any) -> None:
        self.log.info(msg, extra=data or None)

    def warn(self, msg: str, **data: Any) -> None:
        self.log.warn(msg, extra=data or None)

    def dbg(self, msg: str, **data: Any) -> None:
        self.log.debug(msg, extra=data or None)
