from __future__ import annotations

from .kinds import (
    SLOT_KINDS,
    SlotKind,
    combo_is_empty,
    key_override_is_disabled,
    key_override_is_empty,
    macro_is_empty,
    slot_kind,
    tapdance_is_empty,
)
from .store import SlotStore

__all__ = [
    "SLOT_KINDS",
    "SlotKind",
    "SlotStore",
    "combo_is_empty",
    "key_override_is_disabled",
    "key_override_is_empty",
    "macro_is_empty",
    "slot_kind",
    "tapdance_is_empty",
]
