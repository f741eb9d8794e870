from __future__ import annotations

from .capabilities import DeviceCapabilities
from .outcome import CommitState, Outcome
from .state import DeviceState

__all__ = [
    "CommitState",
    "DeviceCapabilities",
    "DeviceState",
    "Outcome",
]
