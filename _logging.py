# _logging.py
# WatchBridge structured logger: coloured console lines with an optional JSON-lines sink.
# Copyright (c) 2025-2026 WatchBridge contributors
from __future__ import annotations
import sys, datetime, json, os, threading
from typing import Any, Optional, TextIO, Mapping, Dict

RESET = "\033[0m"
DIM = "\033[90m"
RED = "\033[91m"
GREEN = "\033[92m"
YELLOW = "\033[33m"
BLUE = "\033[94m"

LEVELS = {"silent": 60, "error": 40, "warn": 30, "info": 20, "debug": 10}

LABEL_COLORS = {"DEBUG": YELLOW, "INFO": BLUE, "WARN": YELLOW, "ERROR": RED, "SUCCESS": GREEN}

_SECRET_KEYS = ("password", "access_token", "refresh_token", "client_secret", "cookie_at_main", "cookie_ubid_main")


def _env_level(default: str = "info") -> str:
    lvl = (os.getenv("WB_LOG_LEVEL") or default).strip().lower()
    return lvl if lvl in LEVELS else default


def _redact(extra: Mapping[str, Any]) -> Dict[str, Any]:
    return {k: ("***" if str(k).lower() in _SECRET_KEYS and v else v) for k, v in extra.items()}


class _Sink:
    """Output state shared by a logger and every child bound from it."""

    def __init__(self, stream: TextIO, level: str, color: bool, show_time: bool, time_fmt: str):
        self.stream = stream
        self.level_no = LEVELS.get(level, LEVELS["info"])
        self.color = color
        self.show_time = show_time
        self.time_fmt = time_fmt
        self.json_stream: Optional[TextIO] = None
        self.lock = threading.Lock()

    def write(self, line: str, record: Optional[Dict[str, Any]]) -> None:
        with self.lock:
            self.stream.write(line + "\n")
            self.stream.flush()
            if record is not None and self.json_stream is not None:
                self.json_stream.write(json.dumps(record, ensure_ascii=False, default=str) + "\n")
                self.json_stream.flush()


class Logger:
    def __init__(
        self,
        stream: TextIO = sys.stdout,
        level: str = "info",
        use_color: bool = True,
        show_time: bool = True,
        time_fmt: str = "%Y-%m-%d %H:%M:%S",
        *,
        _sink: Optional[_Sink] = None,
        _context: Optional[Dict[str, Any]] = None,
    ):
        self._sink = _sink or _Sink(stream, level, use_color, show_time, time_fmt)
        self._context: Dict[str, Any] = dict(_context or {})

    # Configuration
    @property
    def level_no(self) -> int:
        return self._sink.level_no

    def set_level(self, level: str) -> None:
        self._sink.level_no = LEVELS.get(str(level).lower(), self._sink.level_no)

    def enable_color(self, on: bool = True) -> None:
        self._sink.color = on

    def enable_json(self, file_path: str) -> None:
        self._sink.json_stream = open(file_path, "a", encoding="utf-8")

    def configure(self, cfg: Mapping[str, Any]) -> None:
        """Apply the runtime section of a loaded config (level, colour, JSON sink).

        WB_LOG_LEVEL beats runtime.log_level; runtime.debug is shorthand for debug.
        """
        rt = dict(cfg.get("runtime") or {})
        level = os.getenv("WB_LOG_LEVEL") or rt.get("log_level") or ("debug" if rt.get("debug") else "info")
        self.set_level(str(level))
        if "log_color" in rt:
            self.enable_color(bool(rt.get("log_color")))
        path = str(rt.get("log_json") or "").strip()
        if path:
            self.enable_json(path)

    # Context
    def bind(self, **ctx: Any) -> "Logger":
        return Logger(_sink=self._sink, _context={**self._context, **ctx})

    def child(self, name: str) -> "Logger":
        return self.bind(module=name)

    # Rendering
    def _line(self, label: str, msg: str) -> str:
        sink = self._sink
        mod = str(self._context.get("module") or "").strip()
        tag = f"{LABEL_COLORS[label]}{label}{RESET}" if sink.color and label in LABEL_COLORS else label
        line = f"[{mod}] {tag} {msg}" if mod else f"{tag} {msg}"
        if not sink.show_time:
            return line
        ts = datetime.datetime.now().strftime(sink.time_fmt)
        return f"{DIM}[{ts}]{RESET} {line}" if sink.color else f"[{ts}] {line}"

    def _record(self, label: str, msg: str, extra: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        rec: Dict[str, Any] = {
            "ts": datetime.datetime.now(datetime.timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": label,
            "msg": msg,
            "ctx": dict(self._context),
        }
        if extra:
            rec["extra"] = _redact(extra)
        return rec

    def _log(self, severity: str, label: str, parts: tuple, extra: Optional[Mapping[str, Any]]) -> None:
        if LEVELS[severity] < self._sink.level_no:
            return
        msg = " ".join(str(p) for p in parts)
        shown = msg
        if extra:
            shown = f"{msg} " + " ".join(f"{k}={v}" for k, v in _redact(extra).items())
        record = self._record(label, msg, extra) if self._sink.json_stream is not None else None
        self._sink.write(self._line(label, shown), record)

    # Public API
    def debug(self, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        self._log("debug", "DEBUG", parts, extra)

    def info(self, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        self._log("info", "INFO", parts, extra)

    def warn(self, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        self._log("warn", "WARN", parts, extra)

    def error(self, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        self._log("error", "ERROR", parts, extra)

    def success(self, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        self._log("info", "SUCCESS", parts, extra)


# default instance
log = Logger(level=_env_level())

__all__ = ["Logger", "log", "LEVELS"]
