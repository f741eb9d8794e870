from __future__ import annotations

import string
from typing import Dict, Mapping, Optional, Protocol

from .ir import KeyCode


class KeyCodec(Protocol):
    """Resolve textual key tokens to numeric keycodes and back."""

    def parse(self, token: str) -> Optional[KeyCode]: ...

    def stringify(self, code: KeyCode) -> str: ...


def _basic_keycodes() -> Dict[str, KeyCode]:
    names: Dict[str, KeyCode] = {"KC_NO": 0x00, "KC_TRANSPARENT": 0x01}
    for offset, letter in enumerate(string.ascii_uppercase):
        names[f"KC_{letter}"] = 0x04 + offset
    for offset, digit in enumerate("1234567890"):
        names[f"KC_{digit}"] = 0x1E + offset
    names.update(
        {
            "KC_ENTER": 0x28,
            "KC_ESCAPE": 0x29,
            "KC_BACKSPACE": 0x2A,
            "KC_TAB": 0x2B,
            "KC_SPACE": 0x2C,
            "KC_MINUS": 0x2D,
            "KC_EQUAL": 0x2E,
            "KC_LEFT_BRACKET": 0x2F,
            "KC_RIGHT_BRACKET": 0x30,
            "KC_BACKSLASH": 0x31,
            "KC_SEMICOLON": 0x33,
            "KC_QUOTE": 0x34,
            "KC_GRAVE": 0x35,
            "KC_COMMA": 0x36,
            "KC_DOT": 0x37,
            "KC_SLASH": 0x38,
            "KC_CAPS_LOCK": 0x39,
        }
    )
    for offset in range(12):
        names[f"KC_F{offset + 1}"] = 0x3A + offset
    names.update(
        {
            "KC_INSERT": 0x49,
            "KC_HOME": 0x4A,
            "KC_PAGE_UP": 0x4B,
            "KC_DELETE": 0x4C,
            "KC_END": 0x4D,
            "KC_PAGE_DOWN": 0x4E,
            "KC_RIGHT": 0x4F,
            "KC_LEFT": 0x50,
            "KC_DOWN": 0x51,
            "KC_UP": 0x52,
            "KC_LEFT_CTRL": 0xE0,
            "KC_LEFT_SHIFT": 0xE1,
            "KC_LEFT_ALT": 0xE2,
            "KC_LEFT_GUI": 0xE3,
            "KC_RIGHT_CTRL": 0xE4,
            "KC_RIGHT_SHIFT": 0xE5,
            "KC_RIGHT_ALT": 0xE6,
            "KC_RIGHT_GUI": 0xE7,
        }
    )
    return names


_BASIC_ALIASES: Dict[str, str] = {
    "KC_NONE": "KC_NO",
    "KC_TRNS": "KC_TRANSPARENT",
    "KC_ENT": "KC_ENTER",
    "KC_ESC": "KC_ESCAPE",
    "KC_BSPC": "KC_BACKSPACE",
    "KC_SPC": "KC_SPACE",
    "KC_MINS": "KC_MINUS",
    "KC_EQL": "KC_EQUAL",
    "KC_LBRC": "KC_LEFT_BRACKET",
    "KC_RBRC": "KC_RIGHT_BRACKET",
    "KC_BSLS": "KC_BACKSLASH",
    "KC_SCLN": "KC_SEMICOLON",
    "KC_QUOT": "KC_QUOTE",
    "KC_GRV": "KC_GRAVE",
    "KC_COMM": "KC_COMMA",
    "KC_SLSH": "KC_SLASH",
    "KC_CAPS": "KC_CAPS_LOCK",
    "KC_INS": "KC_INSERT",
    "KC_PGUP": "KC_PAGE_UP",
    "KC_DEL": "KC_DELETE",
    "KC_PGDN": "KC_PAGE_DOWN",
    "KC_RGHT": "KC_RIGHT",
    "KC_LCTL": "KC_LEFT_CTRL",
    "KC_LSFT": "KC_LEFT_SHIFT",
    "KC_LALT": "KC_LEFT_ALT",
    "KC_LGUI": "KC_LEFT_GUI",
    "KC_RCTL": "KC_RIGHT_CTRL",
    "KC_RSFT": "KC_RIGHT_SHIFT",
    "KC_RALT": "KC_RIGHT_ALT",
    "KC_RGUI": "KC_RIGHT_GUI",
}


class KeyTable:
    """Table-backed KeyCodec.

    Names are matched case-insensitively; ``0x``-prefixed hex literals are
    accepted for any 16-bit keycode. Unknown codes stringify as hex.
    """

    def __init__(
        self,
        names: Mapping[str, KeyCode],
        *,
        aliases: Mapping[str, str] | None = None,
    ) -> None:
        self._codes = {name.upper(): code for name, code in names.items()}
        self._names = {code: name.upper() for name, code in names.items()}
        for alias, target in (aliases or {}).items():
            if target.upper() not in self._codes:
                raise ValueError(f"alias {alias!r} points at unknown key {target!r}")
            self._codes[alias.upper()] = self._codes[target.upper()]

    @classmethod
    def basic(cls) -> "KeyTable":
        """Basic QMK keycodes (letters, digits, punctuation, F-keys, navigation, modifiers)."""

        return cls(_basic_keycodes(), aliases=_BASIC_ALIASES)

    def parse(self, token: str) -> Optional[KeyCode]:
        token = token.strip().upper()
        if not token:
            return None
        if token in self._codes:
            return self._codes[token]
        if token.startswith("0X"):
            try:
                code = int(token, 16)
            except ValueError:
                return None
            if 0 <= code <= 0xFFFF:
                return code
        return None

    def stringify(self, code: KeyCode) -> str:
        return self._names.get(code, f"0x{code:04X}")
