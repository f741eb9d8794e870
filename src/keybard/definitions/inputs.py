from __future__ import annotations

from typing import Optional, Union

from pydantic import BaseModel

from .ir import ALL_LAYERS


MaskValue = Union[int, str]


class KeyOverrideInput(BaseModel):
    """Key override as written by a user in JSON.

    Key fields accept either the plain or the ``_str`` spelling; masks accept
    ints, decimal strings or ``0x`` hex strings.
    """

    trigger_key: Optional[str] = None
    trigger_key_str: Optional[str] = None
    override_key: Optional[str] = None
    override_key_str: Optional[str] = None
    layers: MaskValue = ALL_LAYERS
    trigger_mods: MaskValue = 0
    negative_mod_mask: MaskValue = 0
    suppressed_mods: MaskValue = 0
    enabled: bool = True

    @property
    def trigger(self) -> Optional[str]:
        return self.trigger_key or self.trigger_key_str

    @property
    def replacement(self) -> Optional[str]:
        return self.override_key or self.override_key_str
