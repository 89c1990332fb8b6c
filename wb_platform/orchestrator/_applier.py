# wb_platform/orchestrator/_applier.py
# Sync-mode gate in front of every mutating call on the target.
# Copyright (c) 2025-2026 WatchBridge contributors
from __future__ import annotations

from typing import Any, Callable, List, Sequence

from ..models import Diff, SyncMode, TraktItem
from ._logging import Emitter
from ._types import PhaseStats

WriteFn = Callable[[List[TraktItem]], Any]


def _payload(items: Sequence[TraktItem]) -> list[str]:
    out: list[str] = []
    for it in items:
        ident = it.spec.ids.imdb or it.spec.ids.slug or "?"
        out.append(f"{it.type.value}:{ident}" + (f"={it.rating}" if it.rating is not None else ""))
    return out


#--- Public apply functions ---------------------------------------------------
def apply_add(*, items: Sequence[TraktItem], mode: SyncMode, feature: str, call: WriteFn,
              emitter: Emitter, stats: PhaseStats) -> bool:
    if not items:
        return False
    if not mode.allows_add:
        emitter.info(f"sync mode {mode.value} would have added {len(items)} trakt {feature} item(s)",
                     **{feature: _payload(items)})
        emitter.emit("apply:add:skipped", feature=feature, count=len(items), mode=mode.value)
        stats.skipped_adds += len(items)
        return False
    emitter.emit("apply:add:start", feature=feature, count=len(items))
    call(list(items))
    stats.added += len(items)
    emitter.emit("apply:add:done", feature=feature, count=len(items))
    return True


def apply_remove(*, items: Sequence[TraktItem], mode: SyncMode, feature: str, call: WriteFn,
                 emitter: Emitter, stats: PhaseStats) -> bool:
    if not items:
        return False
    if not mode.allows_remove:
        emitter.info(f"sync mode {mode.value} would have deleted {len(items)} trakt {feature} item(s)",
                     **{feature: _payload(items)})
        emitter.emit("apply:remove:skipped", feature=feature, count=len(items), mode=mode.value)
        stats.skipped_removes += len(items)
        return False
    emitter.emit("apply:remove:start", feature=feature, count=len(items))
    call(list(items))
    stats.removed += len(items)
    emitter.emit("apply:remove:done", feature=feature, count=len(items))
    return True


def apply_diff(*, diff: Diff, mode: SyncMode, feature: str, add: WriteFn, remove: WriteFn,
               emitter: Emitter, stats: PhaseStats) -> None:
    apply_add(items=diff.add, mode=mode, feature=feature, call=add, emitter=emitter, stats=stats)
    apply_remove(items=diff.remove, mode=mode, feature=feature, call=remove, emitter=emitter, stats=stats)
