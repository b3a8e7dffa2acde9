"""
draft_store.py — Per-session form drafts
In-memory store keyed by entity id ("budget:12", "budget:new", ...). Edits
are staged and only written once the form has been quiet for the autosave
delay; a successful submit clears the draft.
"""

import copy
import time

from config import DRAFT_AUTOSAVE_SECONDS


class DraftStore:
    """Debounced draft storage with an injectable clock."""

    def __init__(self, delay_seconds: float = DRAFT_AUTOSAVE_SECONDS, clock=time.monotonic):
        self._delay = delay_seconds
        self._clock = clock
        # key → {data, saved_at}
        self._drafts: dict[str, dict] = {}
        # key → {data, due}
        self._pending: dict[str, dict] = {}

    # ------------------------------------------------------------------
    def schedule(self, key: str, data: dict):
        """Stage ``data``; every new call for the same key restarts the timer."""
        self._pending[key] = {
            "data": copy.deepcopy(data),
            "due": self._clock() + self._delay,
        }

    # ------------------------------------------------------------------
    def flush_due(self) -> list[str]:
        """Write every staged draft whose quiet period has elapsed."""
        now = self._clock()
        written = [k for k, v in self._pending.items() if v["due"] <= now]
        for k in written:
            entry = self._pending.pop(k)
            self._drafts[k] = {"data": entry["data"], "saved_at": now}
        return written

    # ------------------------------------------------------------------
    def load(self, key: str) -> dict | None:
        self.flush_due()
        entry = self._drafts.get(key)
        return copy.deepcopy(entry["data"]) if entry else None

    def has_pending(self, key: str) -> bool:
        return key in self._pending

    def clear(self, key: str):
        self._drafts.pop(key, None)
        self._pending.pop(key, None)
