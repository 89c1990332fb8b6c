# /providers/sync/_mod_base.py
# WatchBridge sync primitives: error taxonomy, run status and the cancellable run context
# Copyright (c) 2025-2026 WatchBridge contributors
from __future__ import annotations

import threading
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Iterable

__all__ = [
    "ModuleError",
    "RecoverableModuleError",
    "ConfigError",
    "ListNotFoundError",
    "AccountLimitExceededError",
    "UnexpectedStatusCodeError",
    "MaxRetriesReachedError",
    "SyncCancelledError",
    "AuthError",
    "BrowserFlowError",
    "SourceFormatError",
    "SyncStatus",
    "RunContext",
]


# Errors

class ModuleError(RuntimeError): ...
class RecoverableModuleError(ModuleError): ...
class ConfigError(ModuleError): ...
class AuthError(ModuleError): ...
class BrowserFlowError(AuthError): ...
class SourceFormatError(ModuleError): ...


class ListNotFoundError(RecoverableModuleError):
    def __init__(self, slug: str):
        super().__init__(f"list with slug {slug} could not be found")
        self.slug = slug


class AccountLimitExceededError(ModuleError):
    def __init__(self) -> None:
        super().__init__("trakt account limit exceeded (HTTP 420); more info: https://trakt.tv/vip")


class UnexpectedStatusCodeError(ModuleError):
    def __init__(self, got: int, want: Iterable[int]):
        self.got = int(got)
        self.want = tuple(int(w) for w in want)
        super().__init__(
            f"unexpected status code: got {self.got}, want {' or '.join(str(w) for w in self.want)}"
        )


class MaxRetriesReachedError(ModuleError):
    def __init__(self, attempts: int, url: str = ""):
        self.attempts = int(attempts)
        self.url = url
        where = f" for {url}" if url else ""
        super().__init__(f"reached max retry attempts ({self.attempts}){where}")


class SyncCancelledError(ModuleError):
    def __init__(self, reason: str = "cancelled"):
        self.reason = reason
        super().__init__(f"sync {reason}")


# Status

class SyncStatus(Enum):
    IDLE = auto()
    RUNNING = auto()
    SUCCESS = auto()
    FAILED = auto()
    CANCELLED = auto()


# Run context

@dataclass
class RunContext:
    """Cancellation + deadline shared by every network call of one sync run."""

    run_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    timeout_sec: float | None = None
    started_at: float = field(default_factory=time.monotonic)
    _cancel: threading.Event = field(default_factory=threading.Event, repr=False)

    @property
    def deadline(self) -> float | None:
        if not self.timeout_sec:
            return None
        return self.started_at + float(self.timeout_sec)

    def cancel(self) -> None:
        self._cancel.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def remaining(self) -> float | None:
        dl = self.deadline
        return None if dl is None else max(0.0, dl - time.monotonic())

    def check(self) -> None:
        if self._cancel.is_set():
            raise SyncCancelledError("cancelled")
        dl = self.deadline
        if dl is not None and time.monotonic() >= dl:
            raise SyncCancelledError(f"timed out after {self.timeout_sec:g}s")

    def sleep(self, seconds: float) -> None:
        """Interruptible sleep: wakes on cancel and never overshoots the deadline."""
        self.check()
        wait = max(0.0, float(seconds))
        rem = self.remaining()
        if rem is not None and wait >= rem:
            self._cancel.wait(rem)
            self.check()
            raise SyncCancelledError(f"timed out after {self.timeout_sec:g}s")
        if self._cancel.wait(wait):
            raise SyncCancelledError("cancelled")


def as_dict(err: BaseException | None) -> dict[str, Any] | None:
    if err is None:
        return None
    return {"type": type(err).__name__, "message": str(err)}
