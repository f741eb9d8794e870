from __future__ import annotations

from .config import KeybardConfig, configure_logging, load_config
from .definitions import EntityKind, KeyCodec, KeyTable, compile_definition
from .device import ConfigurationCommitter, Device, DeviceCapabilities, DeviceState, Outcome
from .errors import (
    DataNotPopulated,
    DeviceIOError,
    InvalidKey,
    KeybardError,
    NotFound,
    OutOfRange,
    ParseError,
    SlotsExhausted,
)
from .slots import SlotStore, slot_kind

__all__ = [
    "ConfigurationCommitter",
    "DataNotPopulated",
    "Device",
    "DeviceCapabilities",
    "DeviceIOError",
    "DeviceState",
    "EntityKind",
    "InvalidKey",
    "KeyCodec",
    "KeyTable",
    "KeybardConfig",
    "KeybardError",
    "NotFound",
    "OutOfRange",
    "Outcome",
    "ParseError",
    "SlotStore",
    "SlotsExhausted",
    "compile_definition",
    "configure_logging",
    "load_config",
    "slot_kind",
]
