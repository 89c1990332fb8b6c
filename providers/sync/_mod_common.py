# /providers/sync/_mod_common.py
# WatchBridge common HTTP plumbing: retrying session, replayable bodies, JSON helpers
# Copyright (c) 2025-2026 WatchBridge contributors
from __future__ import annotations

import json
import time
from typing import Any, Callable, Mapping

import requests

from _logging import log as _root_log
from ._mod_base import AccountLimitExceededError, MaxRetriesReachedError, RunContext

__VERSION__ = "1.0.0"
__all__ = [
    "ReplayableBody",
    "RetrySession",
    "build_session",
    "parse_retry_after",
    "safe_json",
    "MAX_ATTEMPTS",
    "RETRY_AFTER_DEFAULT",
    "SERVER_ERROR_BACKOFF",
]

MAX_ATTEMPTS = 5
RETRY_AFTER_DEFAULT = 30.0
SERVER_ERROR_BACKOFF = 1.0
STATUS_ACCOUNT_LIMIT = 420
STATUS_RATE_LIMITED = 429

UA = "WatchBridge/1.0"

SleepFn = Callable[[float], None]

log = _root_log.child("HTTP")


class ReplayableBody:
    """Request body that can be streamed any number of times.

    Bytes read so far stay in the buffer; the read that hits end-of-stream
    returns b"" and rewinds, so the next consumer starts again at byte zero.
    """

    def __init__(self, data: bytes | str):
        self._buf = data.encode("utf-8") if isinstance(data, str) else bytes(data)
        self._pos = 0

    def read(self, size: int = -1) -> bytes:
        if self._pos >= len(self._buf):
            self._pos = 0
            return b""
        if size is None or size < 0:
            end = len(self._buf)
        else:
            end = min(len(self._buf), self._pos + int(size))
        chunk = self._buf[self._pos:end]
        self._pos = end
        return chunk

    def rewind(self) -> "ReplayableBody":
        self._pos = 0
        return self

    def getvalue(self) -> bytes:
        return self._buf

    def __len__(self) -> int:
        return len(self._buf)


def parse_retry_after(h: Mapping[str, Any], default: float = RETRY_AFTER_DEFAULT) -> float:
    raw = h.get("Retry-After") if h is not None else None
    if raw is None:
        return default
    try:
        v = float(str(raw).strip())
    except (TypeError, ValueError):
        return default
    return v if v >= 0 else default


def safe_json(resp: requests.Response) -> Any:
    if not (resp.text or "").strip():
        return {}
    try:
        return resp.json()
    except ValueError:
        return json.loads(resp.text)


class RetrySession(requests.Session):
    """requests.Session that retries 429 and 5xx responses up to a fixed number of attempts.

    420 is Trakt's account quota signal and fails at once. Everything else is
    handed back to the caller untouched.
    """

    def __init__(
        self,
        *,
        max_attempts: int = MAX_ATTEMPTS,
        timeout: float | None = 30.0,
        ctx: RunContext | None = None,
        sleep: SleepFn | None = None,
    ):
        super().__init__()
        self.max_attempts = max(1, int(max_attempts))
        self.timeout = timeout
        self.ctx = ctx
        self._sleep = sleep
        self.headers.update({"User-Agent": UA})

    def _pause(self, seconds: float) -> None:
        if self._sleep is not None:
            self._sleep(seconds)
        elif self.ctx is not None:
            self.ctx.sleep(seconds)
        else:
            time.sleep(seconds)

    def send(self, request: requests.PreparedRequest, **kwargs: Any) -> requests.Response:  # type: ignore[override]
        if kwargs.get("timeout") is None and self.timeout is not None:
            kwargs["timeout"] = self.timeout
        body = request.body
        replay = ReplayableBody(body) if isinstance(body, (bytes, str)) else None

        for attempt in range(1, self.max_attempts + 1):
            if self.ctx is not None:
                self.ctx.check()
            if replay is not None:
                request.body = replay.rewind()
            resp = super().send(request, **kwargs)
            status = resp.status_code

            if status == STATUS_ACCOUNT_LIMIT:
                resp.close()
                raise AccountLimitExceededError()
            if status == STATUS_RATE_LIMITED:
                wait = parse_retry_after(resp.headers)
            elif status >= 500:
                wait = SERVER_ERROR_BACKOFF
            else:
                return resp

            resp.close()
            if attempt >= self.max_attempts:
                break
            log.warn(
                f"{request.method} {request.url} -> {status}; retrying in {wait:g}s",
                extra={"attempt": attempt, "max_attempts": self.max_attempts},
            )
            self._pause(wait)

        raise MaxRetriesReachedError(self.max_attempts, str(request.url or ""))


def build_session(
    *,
    ctx: RunContext | None = None,
    timeout: float | None = 30.0,
    max_attempts: int = MAX_ATTEMPTS,
    sleep: SleepFn | None = None,
) -> RetrySession:
    return RetrySession(max_attempts=max_attempts, timeout=timeout, ctx=ctx, sleep=sleep)
