# /watchbridge.py
# WatchBridge - one-way IMDb -> Trakt sync: one-shot runner and HTTP server
# Copyright (c) 2025-2026 WatchBridge contributors
from __future__ import annotations

import sys
from typing import Optional, Sequence

import uvicorn
from fastapi import FastAPI

from _logging import log as _root_log
from api import register as register_api
from providers.sync._mod_base import ModuleError, RunContext
from wb_platform.config_base import config_path, load_config, save_trakt_tokens, validate_config
from wb_platform.orchestrator import run_sync

log = _root_log.child("MAIN")

app = FastAPI(title="WatchBridge")
register_api(app)

USAGE = "usage: watchbridge [sync] | watchbridge serve [host] [port]"


def sync_once() -> int:
    """Run a single sync with the config on disk; non-zero exit on any module error."""
    try:
        cfg = load_config()
        log.configure(cfg)
        validate_config(cfg)
    except ModuleError as e:
        log.error(f"invalid config ({config_path()}): {e}")
        return 1

    timeout = (cfg.get("sync") or {}).get("timeout")
    ctx = RunContext(timeout_sec=float(timeout) if timeout else None)
    try:
        run_sync(cfg, ctx=ctx, save=save_trakt_tokens)
    except ModuleError as e:
        log.error(f"sync run {ctx.run_id} failed: {e}")
        return 1
    return 0


def serve(host: str = "0.0.0.0", port: int = 8788) -> None:
    cfg = load_config()
    log.configure(cfg)
    debug = bool((cfg.get("runtime") or {}).get("debug"))
    print("\nWatchBridge running:")
    print(f"  Local:   http://127.0.0.1:{port}")
    print(f"  Bind:    {host}:{port}")
    print(f"  Config:  {config_path()} (JSON)\n")
    uvicorn.run(app, host=host, port=port, log_level=("debug" if debug else "warning"))


# Entry point
def main(argv: Optional[Sequence[str]] = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    cmd = args.pop(0) if args else "sync"
    if cmd == "sync" and not args:
        return sync_once()
    if cmd == "serve" and len(args) <= 2:
        host = args[0] if args else "0.0.0.0"
        try:
            port = int(args[1]) if len(args) > 1 else 8788
        except ValueError:
            print(USAGE, file=sys.stderr)
            return 2
        serve(host, port)
        return 0
    print(USAGE, file=sys.stderr)
    return 2


if __name__ == "__main__":
    sys.exit(main())
