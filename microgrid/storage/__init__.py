"""Storage modules for micro-grid state persistence."""

from microgrid.storage.state_store import (
    StateStore,
    find_stale_reason,
    state_from_dict,
    state_to_dict,
)

__all__ = [
    "StateStore",
    "find_stale_reason",
    "state_from_dict",
    "state_to_dict",
]
