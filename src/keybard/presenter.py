from __future__ import annotations

import json
from typing import List

from keybard.definitions.ir import (
    ALL_LAYERS,
    KC_NO,
    Combo,
    Delay,
    KeyOverride,
    Macro,
    Record,
    Tapdance,
    Text,
)
from keybard.definitions.keycodec import KeyCodec
from keybard.device.models.outcome import Outcome


_MOD_NAMES = ("LCTL", "LSFT", "LALT", "LGUI", "RCTL", "RSFT", "RALT", "RGUI")


def format_mods(mask: int) -> str:
    """``0x22`` -> ``LSFT + RSFT``."""

    return " + ".join(name for bit, name in enumerate(_MOD_NAMES) if mask & (1 << bit))


def format_layers(mask: int) -> str:
    if mask == ALL_LAYERS:
        return "all"
    layers = [str(i) for i in range(16) if mask & (1 << i)]
    return ", ".join(layers) if layers else "none"


def format_macro(macro: Macro, codec: KeyCodec) -> str:
    parts: List[str] = []
    for action in macro.actions:
        if isinstance(action, Delay):
            parts.append(f"Delay({action.ms}ms)")
        elif isinstance(action, Text):
            parts.append(f'Text("{action.text}")')
        else:
            parts.append(f"{action.kind.capitalize()}({codec.stringify(action.key)})")
    return f"Macro {macro.id}: {' '.join(parts)}"


def format_tapdance(tapdance: Tapdance, codec: KeyCodec) -> str:
    parts = [
        f"{label}({codec.stringify(key)})"
        for label, key in (
            ("Tap", tapdance.tap),
            ("Hold", tapdance.hold),
            ("DoubleTap", tapdance.doubletap),
            ("TapHold", tapdance.taphold),
        )
        if key != KC_NO
    ]
    parts.append(f"Term({tapdance.term_ms}ms)")
    return f"Tapdance {tapdance.id}: {' '.join(parts)}"


def format_key_override(override: KeyOverride, codec: KeyCodec, *, verbose: bool = False) -> str:
    status = "enabled" if override.enabled else "disabled"
    line = (
        f"Override {override.id}: {codec.stringify(override.trigger)} -> "
        f"{codec.stringify(override.replacement)} ({status})"
    )
    if not verbose:
        return line

    details = [line]
    if override.layers != ALL_LAYERS:
        details.append(f"  Layers: {format_layers(override.layers)}")
    for label, mask in (
        ("Trigger modifiers", override.trigger_mods),
        ("Negative modifiers", override.negative_mods),
        ("Suppressed modifiers", override.suppressed_mods),
    ):
        if mask:
            details.append(f"  {label}: {format_mods(mask)}")
    return "\n".join(details)


def format_combo(combo: Combo, codec: KeyCodec) -> str:
    triggers = " + ".join(codec.stringify(k) for k in combo.trigger_keys if k != KC_NO)
    status = "enabled" if combo.enabled else "disabled"
    details = f"Term: {combo.term}ms, {status}" if combo.term else status
    return f"Combo {combo.id}: {triggers} -> {codec.stringify(combo.action_key)} ({details})"


def format_record(record: Record, codec: KeyCodec, *, verbose: bool = False) -> str:
    if isinstance(record, Macro):
        return format_macro(record, codec)
    if isinstance(record, Tapdance):
        return format_tapdance(record, codec)
    if isinstance(record, KeyOverride):
        return format_key_override(record, codec, verbose=verbose)
    if isinstance(record, Combo):
        return format_combo(record, codec)
    raise TypeError(f"unsupported record type: {type(record).__name__}")


def render_outcome(
    outcome: Outcome,
    codec: KeyCodec,
    *,
    fmt: str = "text",
    verbose: bool = False,
) -> str:
    """Render an outcome for the terminal, as text or JSON."""

    if fmt.lower() == "json":
        return json.dumps(outcome.model_dump(mode="json"), indent=2)

    if not outcome.ok:
        return f"Error: {outcome.message}"

    lines = [f"Warning: {warning}" for warning in outcome.warnings]
    if outcome.message:
        lines.append(outcome.message)
    lines.extend(
        "  " + format_record(record, codec, verbose=verbose).replace("\n", "\n  ")
        for record in outcome.records
    )
    return "\n".join(lines)
