# wb_platform/modules_registry.py
from importlib import import_module
from typing import Any, Mapping

MODULES = {
    "SOURCE": {
        "_mod_IMDB": "providers.sync._mod_IMDB",
    },
    "TARGET": {
        "_mod_TRAKT": "providers.sync._mod_TRAKT",
    },
}

DEFAULT_SOURCE = MODULES["SOURCE"]["_mod_IMDB"]


def get_source_module_path(cfg: Mapping[str, Any]) -> str:
    path = str((cfg.get("imdb") or {}).get("module") or "").strip()
    return path or DEFAULT_SOURCE


def load_source(cfg: Mapping[str, Any], **kw: Any) -> Any:
    path = get_source_module_path(cfg)
    mod = import_module(path)
    factory = getattr(mod, "build_source", None)
    if not callable(factory):
        raise ImportError(f"source module {path} does not expose build_source(cfg)")
    return factory(cfg, **kw)


def load_target(cfg: Mapping[str, Any], **kw: Any) -> Any:
    mod = import_module(MODULES["TARGET"]["_mod_TRAKT"])
    return mod.build_client(cfg, **kw)

