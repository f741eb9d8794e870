from __future__ import annotations

from typing import Set

from pydantic import BaseModel, Field

from keybard.definitions.ir import EntityKind


class DeviceCapabilities(BaseModel):
    """Persistence operations a connected device supports.

    Resolved once when the connection is made.
    """

    saves: Set[EntityKind] = Field(default_factory=set)
    generic_save: bool = False
