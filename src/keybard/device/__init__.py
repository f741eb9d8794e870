from __future__ import annotations

from .committer import ConfigurationCommitter
from .models import CommitState, DeviceCapabilities, DeviceState, Outcome
from .protocol import Device

__all__ = [
    "CommitState",
    "ConfigurationCommitter",
    "Device",
    "DeviceCapabilities",
    "DeviceState",
    "Outcome",
]
