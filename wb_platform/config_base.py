# wb_platform/config_base.py
# WatchBridge configuration: defaults, config.json IO, WB_* environment overlay, validation.
# Copyright (c) 2025-2026 WatchBridge contributors
from __future__ import annotations

import copy
import json
import os
import re
import secrets
import threading
import time
from pathlib import Path
from typing import Any, Dict, Mapping

from providers.sync._mod_base import ConfigError

# ------------------------------------------------------------
# Base dir resolution
# ------------------------------------------------------------
def CONFIG_BASE() -> Path:
    """
    Determine the base directory for config files.

    Priority:
      1) $CONFIG_BASE if set
      2) /config (when running in a container that mounts /config)
      3) Project root (one level up from this package)
    """
    env = os.getenv("CONFIG_BASE")
    if env:
        return Path(env)

    if Path("/app").exists():
        return Path("/config")

    return Path(__file__).resolve().parents[1]


ENV_PREFIX = "WB_"

IMDB_AUTH_METHODS = ("credentials", "cookies", "none")
SYNC_MODES = ("full", "add-only", "dry-run")
LIST_ID_RE = re.compile(r"^ls[0-9]{9}$")
TOKEN_KEYS = ("access_token", "refresh_token", "expires_at")

# Sample values shipped in docs and templates; a config still carrying them was never filled in.
DUMMY_VALUES = frozenset({
    "user@domain.com",
    "password123",
    "changeme",
    "ls000000000",
    "ls111111111",
    "301-0710501-5367639",
})

# Default config structure
DEFAULT_CFG: Dict[str, Any] = {
    # --- Source (IMDb) -------------------------------------------------------
    "imdb": {
        "auth": "none",                                 # "credentials" | "cookies" | "none" (none = lists by id only; watchlist.csv + ratings.csv need one of the others)
        "email": "",                                    # Account the exports in export_dir belong to; only checked, never sent (auth == credentials)
        "password": "",                                 # Only checked, never sent (auth == credentials)
        "cookie_at_main": "",                           # Required when auth == cookies
        "cookie_ubid_main": "",                         # Required when auth == cookies
        "lists": [],                                    # IMDb list ids to mirror, e.g. ["ls123456789"]
        "list_names": {},                               # Optional display-name override per list id
        "export_dir": "",                               # Where IMDb CSV exports live (defaults to CONFIG/imdb)
        "refresh_exports": True,                        # Re-download public list exports every run
        "timeout": 30,                                  # HTTP timeout (seconds)
        "module": "providers.sync._mod_IMDB",           # Source module (must expose build_source)
    },

    # --- Target (Trakt) ------------------------------------------------------
    "trakt": {
        "email": "",                                    # trakt.tv login used to approve the device code
        "password": "",                                 # trakt.tv password
        "client_id": "",                                # From your Trakt API app
        "client_secret": "",                            # From your Trakt API app
        "access_token": "",                             # OAuth2 access token (stored after the first run)
        "refresh_token": "",                            # OAuth2 refresh token
        "expires_at": 0,                                # Epoch when access_token expires
        "timeout": 30,                                  # HTTP timeout (seconds)
        "lists_workers": 4,                             # Parallel list fetches during hydration
    },

    # --- Sync ----------------------------------------------------------------
    "sync": {
        "mode": "dry-run",                              # "full" | "add-only" | "dry-run"
        "lists": True,                                  # Mirror imdb.lists into Trakt lists
        "watchlist": False,                             # Mirror the IMDb watchlist
        "ratings": False,                               # Mirror IMDb ratings
        "history": False,                               # Derive Trakt history from rating changes
        "timeout": 600,                                 # Whole-run deadline (seconds); 0 = none
    },

    # --- Runtime -------------------------------------------------------------
    "runtime": {
        "log_level": "info",                            # silent | error | warn | info | debug
        "log_color": True,                              # ANSI colours on console output
        "log_json": "",                                 # Optional JSON-lines log file path
        "debug": False,                                 # Shorthand for log_level=debug
    },
}


# ------------------------------------------------------------
# Helpers: paths, IO, merging
# ------------------------------------------------------------
def _cfg_file() -> Path:
    return CONFIG_BASE() / "config.json"


def config_path() -> Path:
    return _cfg_file()


def _read_json(p: Path) -> Dict[str, Any]:
    with p.open("r", encoding="utf-8") as f:
        return json.load(f)


def _write_json_atomic(p: Path, data: Dict[str, Any]) -> None:
    p.parent.mkdir(parents=True, exist_ok=True)
    suffix = f".{time.time_ns()}.{os.getpid()}.{threading.get_ident()}.{secrets.token_hex(4)}.tmp"
    tmp = p.with_suffix(suffix)

    with tmp.open("w", encoding="utf-8", newline="\n") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
        f.write("\n")
    tmp.replace(p)


def _deep_merge(base: Dict[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(base)
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = copy.deepcopy(v)
    return out


# ------------------------------------------------------------
# Environment overlay (WB_SECTION_KEY=value)
# ------------------------------------------------------------
def _coerce(raw: str, like: Any) -> Any:
    s = raw.strip()
    if isinstance(like, bool):
        low = s.lower()
        if low in ("1", "true", "yes", "on"):
            return True
        if low in ("0", "false", "no", "off", ""):
            return False
        raise ConfigError(f"expected a boolean, got {raw!r}")
    if isinstance(like, int):
        try:
            return int(s)
        except ValueError as e:
            raise ConfigError(f"expected an integer, got {raw!r}") from e
    if isinstance(like, float):
        try:
            return float(s)
        except ValueError as e:
            raise ConfigError(f"expected a number, got {raw!r}") from e
    if isinstance(like, list):
        return [p.strip() for p in s.split(",") if p.strip()]
    return s


def env_overrides(environ: Mapping[str, str] | None = None) -> Dict[str, Any]:
    env = os.environ if environ is None else environ
    out: Dict[str, Any] = {}
    for name, raw in env.items():
        if not name.startswith(ENV_PREFIX) or raw == "":
            continue
        rest = name[len(ENV_PREFIX):].lower()
        section, _, key = rest.partition("_")
        defaults = DEFAULT_CFG.get(section)
        if not isinstance(defaults, dict) or key not in defaults or isinstance(defaults[key], dict):
            continue
        try:
            out.setdefault(section, {})[key] = _coerce(raw, defaults[key])
        except ConfigError as e:
            raise ConfigError(f"environment variable {name}: {e}") from e
    return out


# ------------------------------------------------------------
# Public API
# ------------------------------------------------------------
def load_config(*, include_env: bool = True) -> Dict[str, Any]:
    """
    Read config.json merged over the defaults, then apply WB_* environment overrides.
    """
    p = _cfg_file()
    user_cfg: Dict[str, Any] = {}
    if p.exists():
        try:
            user_cfg = _read_json(p)
        except (OSError, ValueError) as e:
            raise ConfigError(f"failure reading {p}: {e}") from e

    cfg = _deep_merge(DEFAULT_CFG, user_cfg)
    if include_env:
        cfg = _deep_merge(cfg, env_overrides())
    if not cfg["imdb"].get("export_dir"):
        cfg["imdb"]["export_dir"] = str(CONFIG_BASE() / "imdb")
    return cfg


def save_config(cfg: Mapping[str, Any]) -> None:
    """
    Write to config.json
    """
    _write_json_atomic(_cfg_file(), dict(cfg or {}))


def save_trakt_tokens(tokens: Mapping[str, Any]) -> None:
    """
    Patch the trakt token fields into config.json as written on disk.

    Defaults, WB_* overrides and per-run changes held in memory never reach the file.
    """
    p = _cfg_file()
    on_disk: Dict[str, Any] = {}
    if p.exists():
        try:
            on_disk = _read_json(p)
        except (OSError, ValueError) as e:
            raise ConfigError(f"failure reading {p}: {e}") from e
    tr = on_disk.setdefault("trakt", {})
    for k in TOKEN_KEYS:
        if k in tokens:
            tr[k] = tokens[k]
    _write_json_atomic(p, on_disk)


def _blank(v: Any) -> bool:
    return v is None or (isinstance(v, str) and not v.strip())


def _check_dummies(cfg: Mapping[str, Any], path: str = "") -> None:
    for k, v in cfg.items():
        key = f"{path}.{k}" if path else str(k)
        if isinstance(v, Mapping):
            _check_dummies(v, key)
        elif isinstance(v, str) and v.strip() in DUMMY_VALUES:
            raise ConfigError(f"field '{key}' contains dummy value '{v}'")
        elif isinstance(v, list):
            for el in v:
                if isinstance(el, str) and el.strip() in DUMMY_VALUES:
                    raise ConfigError(f"field '{key}' contains dummy value '{el}'")


def validate_config(cfg: Mapping[str, Any]) -> None:
    im = dict(cfg.get("imdb") or {})
    tr = dict(cfg.get("trakt") or {})
    sy = dict(cfg.get("sync") or {})

    auth = str(im.get("auth") or "").strip()
    if not auth:
        raise ConfigError("field 'imdb.auth' is required")
    if auth == "credentials":
        for k in ("email", "password"):
            if _blank(im.get(k)):
                raise ConfigError(f"field 'imdb.{k}' is required")
    elif auth == "cookies":
        for k in ("cookie_at_main", "cookie_ubid_main"):
            if _blank(im.get(k)):
                raise ConfigError(f"field 'imdb.{k}' is required")
    elif auth != "none":
        raise ConfigError(f"field 'imdb.auth' must be one of: {', '.join(IMDB_AUTH_METHODS)}")

    lists = im.get("lists") or []
    if not isinstance(lists, list):
        raise ConfigError("field 'imdb.lists' must be a list of list ids")
    for lid in lists:
        if not LIST_ID_RE.match(str(lid)):
            raise ConfigError(f"field 'imdb.lists' is invalid: valid list id starts with ls and is followed by 9 digits, but got {lid}")

    for k in ("email", "password", "client_id", "client_secret"):
        if _blank(tr.get(k)):
            raise ConfigError(f"field 'trakt.{k}' is required")

    mode = str(sy.get("mode") or "").strip()
    if not mode:
        raise ConfigError("field 'sync.mode' is required")
    if mode not in SYNC_MODES:
        raise ConfigError(f"field 'sync.mode' must be one of: {', '.join(SYNC_MODES)}")

    _check_dummies(cfg)

