from __future__ import annotations

from enum import Enum
from typing import Annotated, List, Literal, TypeAlias, Union

from pydantic import BaseModel, Field, field_validator


KeyCode: TypeAlias = int

KC_NO: KeyCode = 0
DEFAULT_TAPPING_TERM = 200
DEFAULT_COMBO_TERM = 50
ALL_LAYERS = 0xFFFF
COMBO_KEY_SLOTS = 4


class EntityKind(str, Enum):
    """Programmable behaviors stored in device slots."""

    MACRO = "macro"
    TAPDANCE = "tapdance"
    KEY_OVERRIDE = "key_override"
    COMBO = "combo"


class Tap(BaseModel):
    """Press and release a key."""

    kind: Literal["tap"] = "tap"
    key: KeyCode


class Down(BaseModel):
    """Press a key and keep it held."""

    kind: Literal["down"] = "down"
    key: KeyCode


class Up(BaseModel):
    """Release a held key."""

    kind: Literal["up"] = "up"
    key: KeyCode


class Delay(BaseModel):
    """Pause between actions, in milliseconds."""

    kind: Literal["delay"] = "delay"
    ms: int = Field(ge=0)


class Text(BaseModel):
    """Type a literal string."""

    kind: Literal["text"] = "text"
    text: str


Action = Annotated[Union[Tap, Down, Up, Delay, Text], Field(discriminator="kind")]


class Macro(BaseModel):
    """A macro slot: an ordered action sequence. No actions means unused."""

    id: int = Field(default=0, ge=0)
    actions: List[Action] = Field(default_factory=list)


class Tapdance(BaseModel):
    """A tap-dance slot. All four keys set to KC_NO means unused."""

    id: int = Field(default=0, ge=0)
    tap: KeyCode = KC_NO
    hold: KeyCode = KC_NO
    doubletap: KeyCode = KC_NO
    taphold: KeyCode = KC_NO
    term_ms: int = Field(default=DEFAULT_TAPPING_TERM, ge=0)


class KeyOverride(BaseModel):
    """A key-override slot. Trigger and replacement both KC_NO means unused."""

    id: int = Field(default=0, ge=0)
    trigger: KeyCode = KC_NO
    replacement: KeyCode = KC_NO
    layers: int = Field(default=ALL_LAYERS, ge=0, le=0xFFFF)
    trigger_mods: int = Field(default=0, ge=0, le=0xFF)
    negative_mods: int = Field(default=0, ge=0, le=0xFF)
    suppressed_mods: int = Field(default=0, ge=0, le=0xFF)
    enabled: bool = True


class Combo(BaseModel):
    """A combo slot: up to four trigger keys (padded with KC_NO) and one action key."""

    id: int = Field(default=0, ge=0)
    trigger_keys: List[KeyCode] = Field(default_factory=lambda: [KC_NO] * COMBO_KEY_SLOTS)
    action_key: KeyCode = KC_NO
    term: int = Field(default=DEFAULT_COMBO_TERM, ge=0)
    enabled: bool = True

    @field_validator("trigger_keys")
    @classmethod
    def _pad_trigger_keys(cls, keys: List[KeyCode]) -> List[KeyCode]:
        if len(keys) > COMBO_KEY_SLOTS:
            raise ValueError(f"at most {COMBO_KEY_SLOTS} trigger keys, got {len(keys)}")
        return list(keys) + [KC_NO] * (COMBO_KEY_SLOTS - len(keys))


Record: TypeAlias = Union[Macro, Tapdance, KeyOverride, Combo]
