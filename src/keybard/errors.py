from __future__ import annotations


class KeybardError(Exception):
    """Base class for expected, locally detected failures."""


class ParseError(KeybardError, ValueError):
    """A definition string could not be compiled."""

    def __init__(self, message: str, *, token: str | None = None) -> None:
        super().__init__(message)
        self.token = token


class InvalidKey(ParseError):
    """The key codec could not resolve a token."""

    def __init__(self, token: str, message: str | None = None) -> None:
        super().__init__(message or f'Invalid key string: "{token}"', token=token)


class SlotsExhausted(KeybardError):
    def __init__(self, capacity: int, *, label: str = "slot") -> None:
        super().__init__(f"No empty {label} slots available. Max {capacity} reached.")
        self.capacity = capacity


class NotFound(KeybardError):
    def __init__(self, slot_id: int, *, label: str = "Slot") -> None:
        super().__init__(f"{label} with ID {slot_id} not found.")
        self.slot_id = slot_id


class OutOfRange(KeybardError):
    def __init__(self, slot_id: int, capacity: int, *, label: str = "Slot") -> None:
        super().__init__(
            f"{label} ID {slot_id} is out of range [0-{capacity - 1}]."
            if capacity > 0
            else f"{label} ID {slot_id} is out of range (no slots available)."
        )
        self.slot_id = slot_id
        self.capacity = capacity


class DataNotPopulated(KeybardError):
    """The device did not report capacity or records for an entity kind.

    Usually means the firmware does not support the feature.
    """

    def __init__(self, label: str, missing: list[str]) -> None:
        super().__init__(
            f"{label} data not fully populated by the device. Missing: {', '.join(missing)}."
        )
        self.missing = missing


class DeviceIOError(KeybardError):
    """Any exception raised by the device collaborator."""
