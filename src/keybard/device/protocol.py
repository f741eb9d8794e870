from __future__ import annotations

from typing import Optional, Protocol

from keybard.definitions.ir import EntityKind

from .models.capabilities import DeviceCapabilities
from .models.state import DeviceState


class Device(Protocol):
    """An open, exclusively owned connection to a keyboard.

    Implemented by the transport/protocol layer. Calls are made one at a time
    and in order; any of them may raise.
    """

    capabilities: DeviceCapabilities

    async def init(self, state: DeviceState) -> None: ...

    async def load(self, state: DeviceState) -> None:
        """Populate ``<kind>_count`` and ``<kind>s`` for every supported kind."""
        ...

    async def push_one(self, state: DeviceState, kind: EntityKind, slot_id: int) -> None:
        """Send the single record at ``slot_id`` from ``state`` to the device."""
        ...

    async def save(self, kind: Optional[EntityKind] = None) -> None:
        """Persist to non-volatile storage; ``None`` means the generic save."""
        ...

    async def close(self) -> None: ...
