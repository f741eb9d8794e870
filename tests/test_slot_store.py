from __future__ import annotations

import itertools

import pytest

from keybard.definitions.ir import KC_NO, Combo, EntityKind, KeyOverride, Macro, Tap, Tapdance
from keybard.errors import NotFound, OutOfRange, ParseError, SlotsExhausted
from keybard.slots import key_override_is_disabled, slot_kind


KC_A, KC_B, KC_C = 0x04, 0x05, 0x06

MACROS = slot_kind(EntityKind.MACRO).store
TAPDANCES = slot_kind(EntityKind.TAPDANCE).store
OVERRIDES = slot_kind(EntityKind.KEY_OVERRIDE).store
COMBOS = slot_kind(EntityKind.COMBO).store


def _macro(slot_id: int, occupied: bool = True) -> Macro:
    return Macro(id=slot_id, actions=[Tap(key=KC_A)] if occupied else [])


def _ids(records) -> list[int]:
    return [r.id for r in records]


@pytest.mark.parametrize("capacity", [1, 2, 3, 4])
def test_find_first_empty_is_smallest_free_id(capacity: int) -> None:
    # every dense occupancy pattern up to the capacity
    for length in range(capacity + 1):
        for pattern in itertools.product([True, False], repeat=length):
            records = [_macro(i, occupied) for i, occupied in enumerate(pattern)]
            free = [i for i in range(capacity) if i >= length or not pattern[i]]
            if free:
                assert MACROS.find_first_empty(records, capacity) == free[0]
            else:
                with pytest.raises(SlotsExhausted) as exc:
                    MACROS.find_first_empty(records, capacity)
                assert exc.value.capacity == capacity


def test_find_first_empty_treats_missing_ids_as_empty() -> None:
    records = [_macro(0), _macro(2)]

    assert MACROS.find_first_empty(records, 4) == 1


def test_find_first_empty_zero_capacity() -> None:
    with pytest.raises(SlotsExhausted):
        MACROS.find_first_empty([], 0)


def test_allocate_pads_with_kind_sentinels() -> None:
    out = COMBOS.allocate([], 8, 3, Combo(trigger_keys=[KC_A, KC_B], action_key=KC_C))

    assert _ids(out) == [0, 1, 2, 3]
    assert all(c.trigger_keys == [KC_NO] * 4 and c.action_key == KC_NO for c in out[:3])
    assert out[3].action_key == KC_C

    overrides = OVERRIDES.allocate([], 4, 2, KeyOverride(trigger=KC_A, replacement=KC_B))
    assert [o.trigger for o in overrides] == [KC_NO, KC_NO, KC_A]
    assert overrides[0].enabled is False


def test_allocate_replaces_existing_and_keeps_order() -> None:
    records = [_macro(0), _macro(1, occupied=False), _macro(2)]
    new = Macro(actions=[Tap(key=KC_C)])

    out = MACROS.allocate(records, 4, 1, new)

    assert _ids(out) == [0, 1, 2]
    assert out[1].actions == [Tap(key=KC_C)]
    assert out[1].id == 1
    # input untouched
    assert records[1].actions == []
    assert new.id == 0


def test_allocate_fills_holes_in_sparse_input() -> None:
    out = MACROS.allocate([_macro(3)], 8, 1, _macro(0))

    assert _ids(out) == [0, 1, 2, 3]
    assert not out[0].actions and not out[2].actions


def test_allocate_out_of_range() -> None:
    with pytest.raises(OutOfRange):
        MACROS.allocate([], 4, 4, _macro(0))


def test_update_in_place_merges_only_patched_fields() -> None:
    records = [Tapdance(id=0, tap=KC_A, hold=KC_B, term_ms=180)]

    out = TAPDANCES.update_in_place(records, 4, 0, {"hold": KC_C})

    assert out[0] == Tapdance(id=0, tap=KC_A, hold=KC_C, term_ms=180)
    assert records[0].hold == KC_B


def test_update_in_place_missing_and_out_of_range() -> None:
    records = [_macro(0)]

    with pytest.raises(NotFound):
        MACROS.update_in_place(records, 4, 2, {"actions": []})
    with pytest.raises(OutOfRange):
        MACROS.update_in_place(records, 4, 4, {"actions": []})
    with pytest.raises(OutOfRange):
        MACROS.update_in_place(records, 4, -1, {"actions": []})


def test_update_in_place_validates_patch() -> None:
    records = [KeyOverride(id=0, trigger=KC_A, replacement=KC_B)]

    with pytest.raises(ParseError, match="layers"):
        OVERRIDES.update_in_place(records, 4, 0, {"layers": 0x1FFFF})
    with pytest.raises(ParseError, match="Unknown fields for key override: colour"):
        OVERRIDES.update_in_place(records, 4, 0, {"colour": 1})
    with pytest.raises(ParseError, match="Slot id cannot be changed"):
        OVERRIDES.update_in_place(records, 4, 0, {"id": 3})


def test_check_patch_needs_no_stored_record() -> None:
    TAPDANCES.check_patch(2, {"hold": KC_C, "term_ms": 120})
    TAPDANCES.check_patch(2, {"id": 2})

    with pytest.raises(ParseError) as exc:
        TAPDANCES.check_patch(2, {"tap_ms": 100})
    assert exc.value.token == "tap_ms"
    with pytest.raises(ParseError, match="term_ms"):
        TAPDANCES.check_patch(2, {"term_ms": -5})
    with pytest.raises(ParseError, match="trigger_keys"):
        COMBOS.check_patch(0, {"trigger_keys": [KC_A] * 5})


def test_clear_writes_sentinel_and_is_idempotent() -> None:
    records = [_macro(0), _macro(1)]

    once = MACROS.clear(records, 4, 1)
    twice = MACROS.clear(once, 4, 1)

    assert once == twice
    assert once[1] == Macro(id=1)
    assert _ids(once) == [0, 1]


def test_clear_missing_and_out_of_range() -> None:
    with pytest.raises(NotFound):
        MACROS.clear([_macro(0)], 4, 1)
    with pytest.raises(OutOfRange):
        MACROS.clear([_macro(0)], 1, 1)


def test_cleared_slot_is_reused() -> None:
    records = [_macro(0), _macro(1), _macro(2)]

    freed = MACROS.clear(records, 3, 1)

    assert MACROS.find_first_empty(freed, 3) == 1


def test_empty_predicates() -> None:
    assert TAPDANCES.is_empty(Tapdance(term_ms=500))
    assert not TAPDANCES.is_empty(Tapdance(taphold=KC_A))
    assert OVERRIDES.is_empty(KeyOverride(enabled=True))
    assert not OVERRIDES.is_empty(KeyOverride(trigger=KC_A))
    assert COMBOS.is_empty(Combo())
    assert not COMBOS.is_empty(Combo(action_key=KC_A))
    assert not COMBOS.is_empty(Combo(trigger_keys=[KC_A]))


def test_key_override_disabled_predicate() -> None:
    assert key_override_is_disabled(KeyOverride(trigger=KC_A, replacement=KC_B, enabled=False))
    assert not key_override_is_disabled(KeyOverride(trigger=KC_A, replacement=KC_B))
    assert not key_override_is_disabled(KeyOverride(enabled=False))
