from __future__ import annotations

from typing import Any, Callable, Generic, List, Mapping, Optional, Sequence, TypeVar

from pydantic import BaseModel, ValidationError

from keybard.errors import NotFound, OutOfRange, ParseError, SlotsExhausted


R = TypeVar("R", bound=BaseModel)


class SlotStore(Generic[R]):
    """Fixed-capacity, id-indexed slot collection.

    Records carry their slot in an ``id`` field. Every operation returns a new
    list and leaves its input untouched. Results are sorted by id and dense:
    any id below the highest one in use holds a record, using the empty
    sentinel where nothing else is stored.
    """

    def __init__(
        self,
        *,
        is_empty: Callable[[R], bool],
        empty_sentinel: Callable[[int], R],
        label: str = "Slot",
    ) -> None:
        self.is_empty = is_empty
        self.empty_sentinel = empty_sentinel
        self.label = label

    def find(self, records: Sequence[R], slot_id: int) -> Optional[R]:
        index = _index_of(records, slot_id)
        return None if index is None else records[index]

    def find_first_empty(self, records: Sequence[R], capacity: int) -> int:
        """Return the smallest id below ``capacity`` that is absent or empty."""

        by_id = {record.id: record for record in records}
        for slot_id in range(capacity):
            record = by_id.get(slot_id)
            if record is None or self.is_empty(record):
                return slot_id

        # unreachable while records stay dense
        if len(records) < capacity:
            return len(records)
        raise SlotsExhausted(capacity, label=self.label.lower())

    def allocate(self, records: Sequence[R], capacity: int, slot_id: int, record: R) -> List[R]:
        """Store ``record`` at ``slot_id``, padding skipped ids with empty sentinels."""

        self.check_range(slot_id, capacity)
        placed = record.model_copy(update={"id": slot_id})

        out = list(records)
        index = _index_of(out, slot_id)
        if index is None:
            out.append(placed)
        else:
            out[index] = placed
        return self._densify(out)

    def update_in_place(
        self,
        records: Sequence[R],
        capacity: int,
        slot_id: int,
        patch: Mapping[str, Any],
    ) -> List[R]:
        """Merge the fields in ``patch`` into the record at ``slot_id``."""

        self.check_patch(slot_id, patch)
        index = self._lookup(records, capacity, slot_id)
        updated = _merge(records[index], patch)

        out = list(records)
        out[index] = updated
        return out

    def check_patch(self, slot_id: int, patch: Mapping[str, Any]) -> None:
        """Validate field names and values of ``patch`` without any stored record.

        Raises ``ParseError`` for an id change, an unknown field or a bad value.
        """

        if patch.get("id", slot_id) != slot_id:
            raise ParseError("Slot id cannot be changed by an update.", token="id")
        template = self.empty_sentinel(0)
        unknown = sorted(set(patch) - set(type(template).model_fields))
        if unknown:
            raise ParseError(
                f"Unknown fields for {self.label.lower()}: {', '.join(unknown)}",
                token=unknown[0],
            )
        _merge(template, {k: v for k, v in patch.items() if k != "id"})

    def clear(self, records: Sequence[R], capacity: int, slot_id: int) -> List[R]:
        """Overwrite the record at ``slot_id`` with the empty sentinel."""

        index = self._lookup(records, capacity, slot_id)
        out = list(records)
        out[index] = self.empty_sentinel(slot_id)
        return out

    def check_range(self, slot_id: int, capacity: int) -> None:
        if not 0 <= slot_id < capacity:
            raise OutOfRange(slot_id, capacity, label=self.label)

    def _lookup(self, records: Sequence[R], capacity: int, slot_id: int) -> int:
        self.check_range(slot_id, capacity)
        index = _index_of(records, slot_id)
        if index is None:
            raise NotFound(slot_id, label=self.label)
        return index

    def _densify(self, records: List[R]) -> List[R]:
        present = {record.id for record in records}
        top = max(present, default=-1)
        padding = [self.empty_sentinel(i) for i in range(top) if i not in present]
        return sorted([*records, *padding], key=lambda r: r.id)


def _merge(record: R, patch: Mapping[str, Any]) -> R:
    try:
        return type(record).model_validate({**record.model_dump(), **patch})
    except ValidationError as exc:
        first = exc.errors()[0]
        loc = ".".join(str(p) for p in first["loc"])
        raise ParseError(f"Invalid value for {loc}: {first['msg']}", token=loc) from exc


def _index_of(records: Sequence[BaseModel], slot_id: int) -> Optional[int]:
    for index, record in enumerate(records):
        if record.id == slot_id:
            return index
    return None
