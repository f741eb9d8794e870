from __future__ import annotations

import pytest

from keybard.definitions.keycodec import KeyTable


def test_basic_table_resolves_names_and_aliases(codec) -> None:
    assert codec.parse("KC_A") == 0x04
    assert codec.parse("kc_z") == 0x1D
    assert codec.parse("KC_1") == 0x1E
    assert codec.parse("KC_0") == 0x27
    assert codec.parse("KC_ENT") == codec.parse("KC_ENTER") == 0x28
    assert codec.parse("KC_F12") == 0x45
    assert codec.parse("KC_RGUI") == 0xE7
    assert codec.parse("KC_NONE") == codec.parse("KC_NO") == 0


def test_hex_literals(codec) -> None:
    assert codec.parse("0x0004") == 4
    assert codec.parse("0x7E00") == 0x7E00
    assert codec.parse("0x10000") is None
    assert codec.parse("0xZZ") is None


@pytest.mark.parametrize("token", ["", "   ", "KC_BOGUS", "A"])
def test_unknown_tokens(codec, token: str) -> None:
    assert codec.parse(token) is None


def test_stringify_prefers_canonical_name(codec) -> None:
    assert codec.stringify(0x04) == "KC_A"
    assert codec.stringify(0) == "KC_NO"
    assert codec.stringify(0xE0) == "KC_LEFT_CTRL"
    assert codec.stringify(0x7E00) == "0x7E00"


def test_alias_to_unknown_key_rejected() -> None:
    with pytest.raises(ValueError):
        KeyTable({"KC_A": 4}, aliases={"KC_Q": "KC_MISSING"})
