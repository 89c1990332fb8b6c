# api/syncAPI.py
# WatchBridge - Synchronization API: trigger, observe and cancel one-way IMDb -> Trakt runs
# Copyright (c) 2025-2026 WatchBridge contributors
from __future__ import annotations

from typing import Any, Optional
from datetime import datetime, timezone

import threading

from fastapi import APIRouter, Body
from pydantic import BaseModel

from _logging import log as _root_log
from providers.sync._mod_base import ModuleError, RunContext, SyncCancelledError, SyncStatus, as_dict
from wb_platform.models import SyncMode
from wb_platform.orchestrator import run_sync

__all__ = ["router", "_is_sync_running", "api_run_sync", "api_sync_status", "api_sync_cancel"]

router = APIRouter(prefix="/api", tags=["synchronization"])
log = _root_log.child("API")

SYNC_PROC_LOCK = threading.Lock()
RUNNING_PROCS: dict[str, threading.Thread] = {}
MAX_EVENTS = 200

_RUN: dict[str, Any] = {}
_CTX: dict[str, RunContext] = {}


def _env():
    from wb_platform.config_base import load_config, save_trakt_tokens, validate_config
    return load_config, save_trakt_tokens, validate_config


def _now_iso() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _reset_run(run_id: str | None = None, mode: str | None = None) -> None:
    _RUN.clear()
    _RUN.update({
        "status": (SyncStatus.RUNNING if run_id else SyncStatus.IDLE).name.lower(),
        "run_id": run_id,
        "mode": mode,
        "started_at": _now_iso() if run_id else None,
        "finished_at": None,
        "summary": None,
        "error": None,
        "events": [],
    })


_reset_run()


def _on_progress(event: str, data: dict[str, Any]) -> None:
    with SYNC_PROC_LOCK:
        evs = _RUN.setdefault("events", [])
        evs.append({"event": event, **data})
        if len(evs) > MAX_EVENTS:
            del evs[: len(evs) - MAX_EVENTS]


def _finish(status: SyncStatus, *, summary: dict[str, Any] | None = None, error: BaseException | None = None) -> None:
    with SYNC_PROC_LOCK:
        _RUN["status"] = status.name.lower()
        _RUN["finished_at"] = _now_iso()
        _RUN["summary"] = summary
        _RUN["error"] = as_dict(error)


def _run_sync_thread(run_id: str, cfg: dict[str, Any], mode: SyncMode, ctx: RunContext) -> None:
    _, save_tokens, _ = _env()
    try:
        summary = run_sync(cfg, mode=mode, ctx=ctx, on_progress=_on_progress, save=save_tokens)
        _finish(SyncStatus.SUCCESS, summary=summary.as_dict())
        log.success(f"sync run {run_id} finished")
    except SyncCancelledError as e:
        log.warn(f"sync run {run_id} stopped: {e}")
        _finish(SyncStatus.CANCELLED, error=e)
    except ModuleError as e:
        log.error(f"sync run {run_id} failed: {e}")
        _finish(SyncStatus.FAILED, error=e)
    except Exception as e:
        # the thread is the last frame; the failure lands in the run status
        log.error(f"sync run {run_id} crashed: {type(e).__name__}: {e}")
        _finish(SyncStatus.FAILED, error=e)
    finally:
        RUNNING_PROCS.pop("SYNC", None)
        _CTX.pop("SYNC", None)


def _is_sync_running() -> bool:
    t = RUNNING_PROCS.get("SYNC")
    return bool(t and t.is_alive())


class RunRequest(BaseModel):
    mode: Optional[str] = None
    timeout: Optional[float] = None


# Trigger sync run endpoint
@router.post("/sync/run")
def api_run_sync(payload: Optional[RunRequest] = Body(None)) -> dict[str, Any]:
    payload = payload or RunRequest()
    load_config, _, validate_config = _env()
    with SYNC_PROC_LOCK:
        if _is_sync_running():
            return {"ok": False, "error": "sync already running"}
        try:
            cfg = load_config()
            if payload.mode:
                cfg.setdefault("sync", {})["mode"] = payload.mode
            validate_config(cfg)
            mode = SyncMode.parse(cfg["sync"]["mode"])
        except (ModuleError, ValueError) as e:
            return {"ok": False, "error": str(e)}

        timeout = payload.timeout if payload.timeout is not None else (cfg.get("sync") or {}).get("timeout")
        ctx = RunContext(timeout_sec=float(timeout) if timeout else None)
        _reset_run(ctx.run_id, mode.value)
        th = threading.Thread(target=_run_sync_thread, args=(ctx.run_id, cfg, mode, ctx), daemon=True)
        RUNNING_PROCS["SYNC"] = th
        _CTX["SYNC"] = ctx
        th.start()
    log.info(f"triggered sync run {ctx.run_id} (mode {mode.value})")
    return {"ok": True, "run_id": ctx.run_id, "mode": mode.value}


@router.get("/sync/status")
def api_sync_status() -> dict[str, Any]:
    with SYNC_PROC_LOCK:
        snap = dict(_RUN)
        snap["events"] = list(_RUN.get("events") or [])
    snap["running"] = _is_sync_running()
    return snap


@router.post("/sync/cancel")
def api_sync_cancel() -> dict[str, Any]:
    ctx = _CTX.get("SYNC")
    if ctx is None or not _is_sync_running():
        return {"ok": False, "error": "no sync running"}
    ctx.cancel()
    log.info(f"cancel requested for sync run {ctx.run_id}")
    return {"ok": True, "run_id": ctx.run_id}
