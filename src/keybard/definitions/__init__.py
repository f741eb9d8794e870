from __future__ import annotations

from .dsl import (
    compile_definition,
    parse_combo,
    parse_key_override,
    parse_key_override_json,
    parse_macro,
    parse_mask,
    parse_tapdance,
    parse_term,
)
from .ir import (
    KC_NO,
    Action,
    Combo,
    Delay,
    Down,
    EntityKind,
    KeyCode,
    KeyOverride,
    Macro,
    Record,
    Tap,
    Tapdance,
    Text,
    Up,
)
from .keycodec import KeyCodec, KeyTable

__all__ = [
    "KC_NO",
    "Action",
    "Combo",
    "Delay",
    "Down",
    "EntityKind",
    "KeyCodec",
    "KeyCode",
    "KeyOverride",
    "KeyTable",
    "Macro",
    "Record",
    "Tap",
    "Tapdance",
    "Text",
    "Up",
    "compile_definition",
    "parse_combo",
    "parse_key_override",
    "parse_key_override_json",
    "parse_macro",
    "parse_mask",
    "parse_tapdance",
    "parse_term",
]
