"""Shared constants for mosusync."""

from __future__ import annotations

#: Bridge carrying core-state snapshots from the backend.
CORE_STATE_BRIDGE = "mosuCoreState"

#: Bridge accepting fire-and-forget action requests.
ACTIONS_BRIDGE = "mosuActions"

#: Seconds between bridge lookups while waiting for a bridge to appear.
DEFAULT_POLL_INTERVAL: float = 0.05

# Wire keys of the collection slice.
ITEMS_KEY = "beatmapItems"
TODO_IDS_KEY = "todoIds"
DONE_IDS_KEY = "doneIds"

#: Sender-side intent flag; only an explicit ``False`` means "unchanged".
ITEMS_CHANGED_KEYS: tuple[str, ...] = ("_itemsChanged", "itemsChanged")

#: Settings keys whose change alone is enough to republish the view state.
RENDER_RELEVANT_SETTINGS: tuple[str, ...] = ("groupMapsBySong", "ignoreGuestDifficulties")
