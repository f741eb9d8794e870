from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel

from keybard.definitions.ir import Combo, KeyOverride, Macro, Tapdance


class DeviceState(BaseModel):
    """Slot data reported by the device during ``load``.

    ``<kind>_count`` is the slot capacity and ``<kind>s`` the stored records.
    A field left as ``None`` means the firmware did not report that kind.
    """

    macro_count: Optional[int] = None
    macros: Optional[List[Macro]] = None
    tapdance_count: Optional[int] = None
    tapdances: Optional[List[Tapdance]] = None
    key_override_count: Optional[int] = None
    key_overrides: Optional[List[KeyOverride]] = None
    combo_count: Optional[int] = None
    combos: Optional[List[Combo]] = None
