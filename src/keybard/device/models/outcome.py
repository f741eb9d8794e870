from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from keybard.definitions.ir import EntityKind, Record


class CommitState(str, Enum):
    """Where a command stopped."""

    UNLOADED = "unloaded"
    LOADED = "loaded"
    MUTATED = "mutated"
    PUSHED = "pushed"
    SAVED = "saved"
    SAVE_SKIPPED = "save_skipped"

    VALIDATION_FAILED = "validation_failed"
    DEVICE_IO_FAILED = "device_io_failed"


class Outcome(BaseModel):
    """Result of one committer command."""

    ok: bool
    command: str
    kind: EntityKind
    state: CommitState
    slot_id: Optional[int] = None
    slot_ids: List[int] = Field(default_factory=list)
    committed: List[int] = Field(default_factory=list)
    capacity: Optional[int] = None
    records: List[Record] = Field(default_factory=list)
    error: Optional[str] = None
    message: str = ""
    warnings: List[str] = Field(default_factory=list)

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1
