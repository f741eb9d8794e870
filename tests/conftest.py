from __future__ import annotations

from typing import Dict, Iterable, List, Optional

import pytest

from keybard.definitions.ir import EntityKind, Record
from keybard.definitions.keycodec import KeyTable
from keybard.device.models import DeviceCapabilities, DeviceState


class FakeDevice:
    """In-memory Device that records every call in order."""

    def __init__(
        self,
        counts: Dict[EntityKind, int],
        records: Optional[Dict[EntityKind, List[Record]]] = None,
        *,
        capabilities: Optional[DeviceCapabilities] = None,
        fail_push_on: Iterable[int] = (),
        fail_load: bool = False,
    ) -> None:
        self.counts = counts
        self.records = records or {}
        self.capabilities = capabilities or DeviceCapabilities(saves=set(EntityKind))
        self.fail_push_on = set(fail_push_on)
        self.fail_load = fail_load
        self.calls: list[tuple] = []
        self.pushed: list[tuple[EntityKind, int, Record]] = []
        self.closed = False

    async def init(self, state: DeviceState) -> None:
        self.calls.append(("init",))

    async def load(self, state: DeviceState) -> None:
        self.calls.append(("load",))
        if self.fail_load:
            raise OSError("device stopped responding")
        for kind, count in self.counts.items():
            setattr(state, f"{kind.value}_count", count)
            setattr(state, f"{kind.value}s", [r.model_copy() for r in self.records.get(kind, [])])

    async def push_one(self, state: DeviceState, kind: EntityKind, slot_id: int) -> None:
        self.calls.append(("push_one", kind, slot_id))
        if slot_id in self.fail_push_on:
            raise OSError(f"write failed for slot {slot_id}")
        record = next(r for r in getattr(state, f"{kind.value}s") if r.id == slot_id)
        self.pushed.append((kind, slot_id, record))

    async def save(self, kind: Optional[EntityKind] = None) -> None:
        self.calls.append(("save", kind))

    async def close(self) -> None:
        self.calls.append(("close",))
        self.closed = True

    @property
    def push_ids(self) -> list[int]:
        return [call[2] for call in self.calls if call[0] == "push_one"]


@pytest.fixture
def codec() -> KeyTable:
    return KeyTable.basic()


@pytest.fixture
def make_device():
    return FakeDevice
