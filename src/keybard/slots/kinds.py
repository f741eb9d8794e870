from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Generic, Type, TypeVar

from pydantic import BaseModel

from keybard.definitions.ir import (
    COMBO_KEY_SLOTS,
    KC_NO,
    Combo,
    EntityKind,
    KeyOverride,
    Macro,
    Tapdance,
)

from .store import SlotStore


R = TypeVar("R", bound=BaseModel)


@dataclass(frozen=True)
class SlotKind(Generic[R]):
    """Everything the committer needs to know about one entity kind."""

    kind: EntityKind
    label: str
    record_type: Type[R]
    count_field: str
    records_field: str
    store: SlotStore[R]


def macro_is_empty(macro: Macro) -> bool:
    return not macro.actions


def tapdance_is_empty(tapdance: Tapdance) -> bool:
    return all(
        key == KC_NO
        for key in (tapdance.tap, tapdance.hold, tapdance.doubletap, tapdance.taphold)
    )


def key_override_is_empty(override: KeyOverride) -> bool:
    return override.trigger == KC_NO and override.replacement == KC_NO


def key_override_is_disabled(override: KeyOverride) -> bool:
    """Occupied but switched off."""

    return not key_override_is_empty(override) and not override.enabled


def combo_is_empty(combo: Combo) -> bool:
    return combo.action_key == KC_NO and all(key == KC_NO for key in combo.trigger_keys)


def _empty_key_override(slot_id: int) -> KeyOverride:
    return KeyOverride(id=slot_id, enabled=False)


def _empty_combo(slot_id: int) -> Combo:
    return Combo(
        id=slot_id, trigger_keys=[KC_NO] * COMBO_KEY_SLOTS, action_key=KC_NO, enabled=False
    )


def _slot_kind(kind: EntityKind, label: str, record_type, is_empty, empty_sentinel) -> SlotKind:
    return SlotKind(
        kind=kind,
        label=label,
        record_type=record_type,
        count_field=f"{kind.value}_count",
        records_field=f"{kind.value}s",
        store=SlotStore(is_empty=is_empty, empty_sentinel=empty_sentinel, label=label),
    )


SLOT_KINDS: Dict[EntityKind, SlotKind] = {
    EntityKind.MACRO: _slot_kind(
        EntityKind.MACRO, "Macro", Macro, macro_is_empty, lambda i: Macro(id=i)
    ),
    EntityKind.TAPDANCE: _slot_kind(
        EntityKind.TAPDANCE, "Tapdance", Tapdance, tapdance_is_empty, lambda i: Tapdance(id=i)
    ),
    EntityKind.KEY_OVERRIDE: _slot_kind(
        EntityKind.KEY_OVERRIDE,
        "Key override",
        KeyOverride,
        key_override_is_empty,
        _empty_key_override,
    ),
    EntityKind.COMBO: _slot_kind(
        EntityKind.COMBO, "Combo", Combo, combo_is_empty, _empty_combo
    ),
}


def slot_kind(kind: EntityKind | str) -> SlotKind:
    return SLOT_KINDS[EntityKind(kind)]
