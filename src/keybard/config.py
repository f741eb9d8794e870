from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

from keybard.definitions.ir import (
    ALL_LAYERS,
    COMBO_KEY_SLOTS,
    DEFAULT_COMBO_TERM,
    DEFAULT_TAPPING_TERM,
)


LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]


class KeybardConfig(BaseModel):
    """Defaults applied when compiling definitions and reporting."""

    tapping_term: int = Field(default=DEFAULT_TAPPING_TERM, ge=0)
    max_combo_trigger_keys: int = Field(default=COMBO_KEY_SLOTS, ge=1, le=COMBO_KEY_SLOTS)
    combo_term: int = Field(default=DEFAULT_COMBO_TERM, ge=0)
    default_layers: int = Field(default=ALL_LAYERS, ge=0, le=0xFFFF)
    log_level: LogLevel = "WARNING"


def load_config(path: str | Path) -> KeybardConfig:
    """Load a TOML config file; a missing ``[keybard]`` table means all defaults."""

    path = Path(path)
    data = tomllib.loads(path.read_text(encoding="utf-8"))
    return KeybardConfig.model_validate(data.get("keybard", {}))


def configure_logging(config: KeybardConfig) -> None:
    logging.getLogger("keybard").setLevel(config.log_level)
