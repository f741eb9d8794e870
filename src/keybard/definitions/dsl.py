from __future__ import annotations

import json
import logging
import re
from typing import Iterator, List

from pydantic import ValidationError

from keybard.errors import InvalidKey, ParseError

from .inputs import KeyOverrideInput, MaskValue
from .ir import (
    ALL_LAYERS,
    COMBO_KEY_SLOTS,
    DEFAULT_COMBO_TERM,
    DEFAULT_TAPPING_TERM,
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
from .keycodec import KeyCodec

logger = logging.getLogger(__name__)

_CALL_RE = re.compile(r"^([A-Za-z]+)\((.*)\)$", re.DOTALL)
# key actions need a non-empty argument
_KEY_CALL_RE = re.compile(r"^([A-Za-z]+)\((.+)\)$", re.DOTALL)
_UINT_RE = re.compile(r"^[0-9]+$")

_MACRO_KEY_ACTIONS = {"TAP": Tap, "DOWN": Down, "UP": Up}
_TAPDANCE_FIELDS = {"TAP": "tap", "HOLD": "hold", "DOUBLE": "doubletap", "TAPHOLD": "taphold"}

_COMBO_FORMAT_ERROR = (
    'Invalid combo definition string. Expected format: '
    '"TRIGGER_KEY1+TRIGGER_KEY2... ACTION_KEY" (e.g., "KC_A+KC_S KC_D")'
)


def _tokens(expr: str) -> Iterator[str]:
    for raw in expr.split(","):
        raw = raw.strip()
        if raw:
            yield raw


def _uint(value: str) -> int | None:
    value = value.strip()
    if not _UINT_RE.match(value):
        return None
    return int(value)


def _resolve(codec: KeyCodec, token: str, message: str) -> KeyCode:
    code = codec.parse(token)
    if code is None:
        raise InvalidKey(token, message)
    return code


def parse_macro(expr: str, codec: KeyCodec) -> Macro:
    """Parse a macro sequence like ``TAP(KC_A),DELAY(50),TEXT(hi)``."""

    actions: List[Action] = []
    for token in _tokens(expr):
        match = _CALL_RE.match(token)
        name = match.group(1).upper() if match else None

        if name == "DELAY":
            ms = _uint(match.group(2))
            if ms is None:
                raise ParseError(f'Invalid delay value in macro sequence: "{token}"', token=token)
            actions.append(Delay(ms=ms))
        elif name in _MACRO_KEY_ACTIONS and _KEY_CALL_RE.match(token):
            key = match.group(2).strip()
            code = _resolve(codec, key, f'Invalid key string in macro sequence: "{key}"')
            actions.append(_MACRO_KEY_ACTIONS[name](key=code))
        elif name == "TEXT":
            actions.append(Text(text=match.group(2)))
        else:
            # bare key name is a tap
            code = _resolve(
                codec,
                token,
                f'Invalid key string or unknown action in macro sequence: "{token}"',
            )
            actions.append(Tap(key=code))

    if not actions:
        raise ParseError(f"Macro sequence is empty or invalid: {expr!r}", token=expr)
    return Macro(actions=actions)


def parse_tapdance(
    expr: str,
    codec: KeyCodec,
    *,
    tapping_term: int = DEFAULT_TAPPING_TERM,
) -> Tapdance:
    """Parse a tap-dance sequence like ``TAP(KC_A),HOLD(KC_LCTL),TERM(180)``."""

    fields: dict[str, int] = {}
    term_ms = tapping_term
    for token in _tokens(expr):
        match = _CALL_RE.match(token)
        name = match.group(1).upper() if match else None

        if name in _TAPDANCE_FIELDS and _KEY_CALL_RE.match(token):
            key = match.group(2).strip()
            fields[_TAPDANCE_FIELDS[name]] = _resolve(
                codec,
                key,
                f'Invalid key string in tapdance sequence: "{key}" for action {name}',
            )
        elif name == "TERM":
            term = _uint(match.group(2))
            if term is None:
                raise ParseError(f'Invalid tapping term value in tapdance sequence: "{token}"', token=token)
            term_ms = term
        else:
            raise ParseError(
                f'Unknown or invalid action format in tapdance sequence: "{token}"',
                token=token,
            )

    if not fields:
        raise ParseError(
            "Tapdance sequence must contain at least one action (TAP, HOLD, DOUBLE, TAPHOLD).",
            token=expr,
        )
    return Tapdance(term_ms=term_ms, **fields)


def parse_combo(
    expr: str,
    codec: KeyCodec,
    *,
    max_trigger_keys: int = COMBO_KEY_SLOTS,
    term: int | str = DEFAULT_COMBO_TERM,
) -> Combo:
    """Parse a combo definition like ``KC_A+KC_S KC_D`` (triggers, then action key)."""

    parts = expr.split()
    if len(parts) != 2:
        raise ParseError(_COMBO_FORMAT_ERROR, token=expr.strip())
    trigger_group, action_token = parts

    names = [k.strip() for k in trigger_group.split("+") if k.strip()]
    if not names:
        raise ParseError(
            f'No trigger keys specified in combo definition: "{trigger_group}"',
            token=trigger_group,
        )
    if len(names) > max_trigger_keys:
        raise ParseError(
            f"Too many trigger keys in \"{trigger_group}\". "
            f"Maximum is {max_trigger_keys}. Found: {len(names)}",
            token=trigger_group,
        )

    triggers: List[KeyCode] = []
    for name in names:
        code = codec.parse(name)
        if code is None or code == KC_NO:
            raise InvalidKey(name, f'Invalid or KC_NO trigger key: "{name}"')
        triggers.append(code)

    # KC_NO is allowed as the action key
    action = _resolve(codec, action_token, f'Invalid action key: "{action_token}"')
    return Combo(trigger_keys=triggers, action_key=action, term=parse_term(term))


def parse_term(value: int | str) -> int:
    """Parse a combo term in milliseconds."""

    if isinstance(value, bool):
        term = None
    elif isinstance(value, int):
        term = value
    else:
        term = _uint(value)
    if term is None or term < 0:
        raise ParseError(
            f'Invalid term value "{value}". Must be a non-negative integer.', token=str(value)
        )
    return term


def parse_mask(value: MaskValue, *, bits: int, name: str) -> int:
    """Parse a bit mask given as int, decimal string or ``0x`` hex string."""

    if isinstance(value, bool):
        raise ParseError(f'Invalid {name} value: "{value}"', token=str(value))
    if isinstance(value, int):
        mask = value
    else:
        text = value.strip()
        try:
            mask = int(text, 16) if text.lower().startswith("0x") else int(text, 10)
        except ValueError:
            raise ParseError(f'Invalid {name} value: "{value}"', token=value) from None
    if not 0 <= mask < (1 << bits):
        raise ParseError(
            f'Invalid {name} value: "{value}" (must fit in {bits} bits)',
            token=str(value),
        )
    return mask


def parse_key_override(
    trigger: str,
    replacement: str,
    codec: KeyCodec,
    *,
    layers: MaskValue = ALL_LAYERS,
    trigger_mods: MaskValue = 0,
    negative_mods: MaskValue = 0,
    suppressed_mods: MaskValue = 0,
    enabled: bool = True,
) -> KeyOverride:
    """Build a key override from key tokens and mask values."""

    return KeyOverride(
        trigger=_resolve(codec, trigger.strip(), f'Invalid trigger key: "{trigger}"'),
        replacement=_resolve(codec, replacement.strip(), f'Invalid override key: "{replacement}"'),
        layers=parse_mask(layers, bits=16, name="layers"),
        trigger_mods=parse_mask(trigger_mods, bits=8, name="trigger_mods"),
        negative_mods=parse_mask(negative_mods, bits=8, name="negative_mods"),
        suppressed_mods=parse_mask(suppressed_mods, bits=8, name="suppressed_mods"),
        enabled=enabled,
    )


def parse_key_override_json(expr: str, codec: KeyCodec) -> KeyOverride:
    """Parse a key override from a JSON object (see ``KeyOverrideInput``)."""

    try:
        data = json.loads(expr)
    except json.JSONDecodeError as exc:
        raise ParseError(f"Invalid JSON: {exc.msg}", token=expr) from exc
    if not isinstance(data, dict):
        raise ParseError(f"Invalid JSON: expected an object, got {type(data).__name__}", token=expr)

    try:
        parsed = KeyOverrideInput.model_validate(data)
    except ValidationError as exc:
        first = exc.errors()[0]
        loc = ".".join(str(p) for p in first["loc"])
        raise ParseError(f"Invalid JSON: {loc}: {first['msg']}", token=expr) from exc

    if not parsed.trigger:
        raise ParseError('JSON must contain "trigger_key" or "trigger_key_str" field', token=expr)
    if not parsed.replacement:
        raise ParseError('JSON must contain "override_key" or "override_key_str" field', token=expr)

    return parse_key_override(
        parsed.trigger,
        parsed.replacement,
        codec,
        layers=parsed.layers,
        trigger_mods=parsed.trigger_mods,
        negative_mods=parsed.negative_mod_mask,
        suppressed_mods=parsed.suppressed_mods,
        enabled=parsed.enabled,
    )


def compile_definition(
    kind: EntityKind,
    expr: str,
    codec: KeyCodec,
    *,
    tapping_term: int = DEFAULT_TAPPING_TERM,
    max_trigger_keys: int = COMBO_KEY_SLOTS,
    combo_term: int = DEFAULT_COMBO_TERM,
) -> Record:
    """Compile a definition string for ``kind`` into a record (slot id not yet assigned)."""

    kind = EntityKind(kind)
    record: Record
    if kind is EntityKind.MACRO:
        record = parse_macro(expr, codec)
    elif kind is EntityKind.TAPDANCE:
        record = parse_tapdance(expr, codec, tapping_term=tapping_term)
    elif kind is EntityKind.COMBO:
        record = parse_combo(expr, codec, max_trigger_keys=max_trigger_keys, term=combo_term)
    elif kind is EntityKind.KEY_OVERRIDE:
        record = parse_key_override_json(expr, codec)
    else:
        raise ValueError(f"unsupported entity kind: {kind!r}")

    logger.debug("compiled %s definition %r -> %r", kind.value, expr, record)
    return record
