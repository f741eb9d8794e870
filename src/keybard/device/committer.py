from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Iterable, List, Mapping, Optional

from keybard.config import KeybardConfig
from keybard.definitions.dsl import (
    compile_definition,
    parse_combo,
    parse_key_override,
    parse_mask,
    parse_term,
)
from keybard.definitions.ir import EntityKind, Record
from keybard.definitions.keycodec import KeyCodec
from keybard.errors import (
    DataNotPopulated,
    DeviceIOError,
    InvalidKey,
    KeybardError,
    NotFound,
    ParseError,
)
from keybard.slots.kinds import SlotKind, key_override_is_disabled, slot_kind

from .models.outcome import CommitState, Outcome
from .models.state import DeviceState
from .protocol import Device

logger = logging.getLogger(__name__)

# fields a redefinition leaves untouched
_KEPT_ON_REDEFINE: dict[EntityKind, set[str]] = {EntityKind.COMBO: {"term", "enabled"}}


class _Progress:
    """Tracks one command through the commit states and builds its Outcome."""

    def __init__(self, command: str, kind: EntityKind) -> None:
        self.command = command
        self.kind = kind
        self.state = CommitState.UNLOADED
        self.ok = False
        self.slot_id: Optional[int] = None
        self.slot_ids: List[int] = []
        self.committed: List[int] = []
        self.capacity: Optional[int] = None
        self.records: List[Record] = []
        self.error: Optional[str] = None
        self.message = ""
        self.warnings: List[str] = []

    def advance(self, state: CommitState) -> None:
        logger.debug("%s %s: %s -> %s", self.command, self.kind.value, self.state.value, state.value)
        self.state = state

    def succeed(self, message: str) -> None:
        self.ok = True
        self.message = message

    def fail(self, state: CommitState, exc: Exception, message: str) -> None:
        self.advance(state)
        self.ok = False
        self.error = type(exc).__name__
        self.message = message

    def outcome(self) -> Outcome:
        return Outcome(
            ok=self.ok,
            command=self.command,
            kind=self.kind,
            state=self.state,
            slot_id=self.slot_id,
            slot_ids=self.slot_ids,
            committed=self.committed,
            capacity=self.capacity,
            records=self.records,
            error=self.error,
            message=self.message,
            warnings=self.warnings,
        )


class ConfigurationCommitter:
    """Add, edit, delete and read slot records on a connected device.

    Each command loads the device state, changes the local records through the
    kind's SlotStore, pushes exactly the touched records and then saves. Every
    command returns an ``Outcome`` and closes the device connection on the way
    out, whatever happened.
    """

    def __init__(
        self,
        device: Device,
        codec: KeyCodec,
        config: KeybardConfig | None = None,
    ) -> None:
        self.device = device
        self.codec = codec
        self.config = config or KeybardConfig()
        self._capabilities = device.capabilities

    # add

    async def add(self, kind: EntityKind | str, expr: str) -> Outcome:
        """Compile ``expr`` and store it in the first empty slot."""

        kind = EntityKind(kind)
        progress = _Progress("add", kind)
        async with self._session(progress):
            record = compile_definition(
                kind,
                expr,
                self.codec,
                tapping_term=self.config.tapping_term,
                max_trigger_keys=self.config.max_combo_trigger_keys,
                combo_term=self.config.combo_term,
            )
            await self._add(progress, slot_kind(kind), record)
        return progress.outcome()

    async def add_key_override(
        self,
        trigger: str,
        replacement: str,
        *,
        layers: int | str | None = None,
        trigger_mods: int | str = 0,
        negative_mods: int | str = 0,
        suppressed_mods: int | str = 0,
        enabled: bool = True,
    ) -> Outcome:
        progress = _Progress("add", EntityKind.KEY_OVERRIDE)
        async with self._session(progress):
            record = parse_key_override(
                trigger,
                replacement,
                self.codec,
                layers=self.config.default_layers if layers is None else layers,
                trigger_mods=trigger_mods,
                negative_mods=negative_mods,
                suppressed_mods=suppressed_mods,
                enabled=enabled,
            )
            await self._add(progress, slot_kind(EntityKind.KEY_OVERRIDE), record)
        return progress.outcome()

    async def add_combo(self, expr: str, *, term: int | str | None = None) -> Outcome:
        progress = _Progress("add", EntityKind.COMBO)
        async with self._session(progress):
            record = parse_combo(
                expr,
                self.codec,
                max_trigger_keys=self.config.max_combo_trigger_keys,
                term=self.config.combo_term if term is None else term,
            )
            await self._add(progress, slot_kind(EntityKind.COMBO), record)
        return progress.outcome()

    async def add_record(self, kind: EntityKind | str, record: Record) -> Outcome:
        """Store an already built record in the first empty slot."""

        kind = EntityKind(kind)
        progress = _Progress("add", kind)
        async with self._session(progress):
            await self._add(progress, slot_kind(kind), record)
        return progress.outcome()

    async def _add(self, progress: _Progress, sk: SlotKind, record: Record) -> None:
        if not isinstance(record, sk.record_type):
            raise TypeError(f"expected {sk.record_type.__name__}, got {type(record).__name__}")

        state = await self._load(progress, sk)
        records, capacity = _slots(state, sk)

        slot_id = sk.store.find_first_empty(records, capacity)
        setattr(state, sk.records_field, sk.store.allocate(records, capacity, slot_id, record))
        progress.slot_id = slot_id
        progress.slot_ids = [slot_id]
        progress.advance(CommitState.MUTATED)

        await self._push(progress, state, sk, slot_id)
        progress.committed.append(slot_id)
        await self._save(progress, sk)
        progress.succeed(f"{sk.label} successfully added with ID {slot_id}.")

    # edit

    async def edit(self, kind: EntityKind | str, slot_id: int, patch: Mapping[str, Any]) -> Outcome:
        """Merge ``patch`` into the existing record at ``slot_id``."""

        kind = EntityKind(kind)
        progress = _Progress("edit", kind)
        async with self._session(progress):
            if not patch:
                raise ParseError("No changes specified.")
            await self._edit(progress, slot_kind(kind), slot_id, patch)
        return progress.outcome()

    async def edit_definition(self, kind: EntityKind | str, slot_id: int, expr: str) -> Outcome:
        """Replace the definition at ``slot_id`` with the compiled ``expr``.

        For macros, tap-dances and combos. Key overrides are edited field by
        field with ``edit_key_override``.
        """

        kind = EntityKind(kind)
        progress = _Progress("edit", kind)
        async with self._session(progress):
            if kind is EntityKind.KEY_OVERRIDE:
                raise ValueError("key overrides are edited with edit_key_override")
            record = compile_definition(
                kind,
                expr,
                self.codec,
                tapping_term=self.config.tapping_term,
                max_trigger_keys=self.config.max_combo_trigger_keys,
            )
            patch = record.model_dump(exclude={"id"} | _KEPT_ON_REDEFINE.get(kind, set()))
            await self._edit(progress, slot_kind(kind), slot_id, patch)
        return progress.outcome()

    async def edit_key_override(
        self,
        slot_id: int,
        *,
        trigger: Optional[str] = None,
        replacement: Optional[str] = None,
        layers: int | str | None = None,
        trigger_mods: int | str | None = None,
        negative_mods: int | str | None = None,
        suppressed_mods: int | str | None = None,
        enabled: Optional[bool] = None,
    ) -> Outcome:
        """Change only the given key-override fields."""

        progress = _Progress("edit", EntityKind.KEY_OVERRIDE)
        async with self._session(progress):
            patch: dict[str, Any] = {}
            for name, token in (("trigger", trigger), ("replacement", replacement)):
                if token is not None:
                    code = self.codec.parse(token.strip())
                    if code is None:
                        raise InvalidKey(token, f'Invalid {name} key: "{token}"')
                    patch[name] = code
            for name, value, bits in (
                ("layers", layers, 16),
                ("trigger_mods", trigger_mods, 8),
                ("negative_mods", negative_mods, 8),
                ("suppressed_mods", suppressed_mods, 8),
            ):
                if value is not None:
                    patch[name] = parse_mask(value, bits=bits, name=name)
            if enabled is not None:
                patch["enabled"] = enabled
            if not patch:
                raise ParseError("No changes specified.")
            await self._edit(progress, slot_kind(EntityKind.KEY_OVERRIDE), slot_id, patch)
        return progress.outcome()

    async def edit_combo(
        self,
        slot_id: int,
        expr: Optional[str] = None,
        *,
        term: int | str | None = None,
        enabled: Optional[bool] = None,
    ) -> Outcome:
        """Change the keys, term or enabled flag of a combo; omitted parts are kept."""

        progress = _Progress("edit", EntityKind.COMBO)
        async with self._session(progress):
            patch: dict[str, Any] = {}
            if expr is not None:
                record = parse_combo(
                    expr, self.codec, max_trigger_keys=self.config.max_combo_trigger_keys
                )
                patch.update(trigger_keys=record.trigger_keys, action_key=record.action_key)
            if term is not None:
                patch["term"] = parse_term(term)
            if enabled is not None:
                patch["enabled"] = enabled
            if not patch:
                raise ParseError("No changes specified.")
            await self._edit(progress, slot_kind(EntityKind.COMBO), slot_id, patch)
        return progress.outcome()

    async def _edit(
        self,
        progress: _Progress,
        sk: SlotKind,
        slot_id: int,
        patch: Mapping[str, Any],
    ) -> None:
        progress.slot_id = slot_id
        progress.slot_ids = [slot_id]
        sk.store.check_patch(slot_id, patch)
        state = await self._load(progress, sk)
        records, capacity = _slots(state, sk)

        setattr(state, sk.records_field, sk.store.update_in_place(records, capacity, slot_id, patch))
        progress.advance(CommitState.MUTATED)

        await self._push(progress, state, sk, slot_id)
        progress.committed.append(slot_id)
        await self._save(progress, sk)
        progress.succeed(f"{sk.label} {slot_id} updated successfully.")

    # delete

    async def delete(self, kind: EntityKind | str, slot_ids: Iterable[int]) -> Outcome:
        """Clear the given slots, one push per slot in ascending id order.

        Every id is checked before anything is pushed. A push failure stops the
        run: lower ids stay committed, higher ids are left untouched.
        """

        kind = EntityKind(kind)
        progress = _Progress("delete", kind)
        async with self._session(progress):
            ids = sorted(set(slot_ids))
            if not ids:
                raise ParseError("At least one ID must be provided.")
            sk = slot_kind(kind)
            state = await self._load(progress, sk)
            await self._clear_all(progress, state, sk, ids, empty_message="")
        return progress.outcome()

    async def delete_matching(
        self,
        kind: EntityKind | str,
        predicate: Callable[[Record], bool],
        *,
        description: str,
    ) -> Outcome:
        """Clear every loaded record matching ``predicate``."""

        kind = EntityKind(kind)
        progress = _Progress("delete", kind)
        async with self._session(progress):
            sk = slot_kind(kind)
            state = await self._load(progress, sk)
            records, _ = _slots(state, sk)
            ids = sorted(record.id for record in records if predicate(record))
            await self._clear_all(
                progress,
                state,
                sk,
                ids,
                empty_message=f"No {description} {sk.label.lower()}s found to delete.",
            )
        return progress.outcome()

    async def delete_all_empty(self, kind: EntityKind | str) -> Outcome:
        return await self.delete_matching(kind, slot_kind(kind).store.is_empty, description="empty")

    async def delete_all_disabled(self) -> Outcome:
        return await self.delete_matching(
            EntityKind.KEY_OVERRIDE, key_override_is_disabled, description="disabled"
        )

    async def _clear_all(
        self,
        progress: _Progress,
        state: DeviceState,
        sk: SlotKind,
        ids: List[int],
        *,
        empty_message: str,
    ) -> None:
        progress.slot_ids = list(ids)
        if not ids:
            progress.succeed(empty_message)
            return

        records, capacity = _slots(state, sk)
        # dry run: any bad id fails before the first push
        staged = records
        for slot_id in ids:
            staged = sk.store.clear(staged, capacity, slot_id)

        for slot_id in ids:
            records = sk.store.clear(records, capacity, slot_id)
            setattr(state, sk.records_field, records)
            progress.advance(CommitState.MUTATED)
            await self._push(progress, state, sk, slot_id)
            progress.committed.append(slot_id)

        await self._save(progress, sk)
        if len(ids) == 1:
            progress.slot_id = ids[0]
            progress.succeed(f"{sk.label} ID {ids[0]} successfully deleted.")
        else:
            joined = ", ".join(str(i) for i in ids)
            progress.succeed(f"{len(ids)} {sk.label.lower()}s successfully deleted (IDs: {joined}).")

    # read

    async def list_records(self, kind: EntityKind | str) -> Outcome:
        """Return the occupied records of ``kind`` and the slot capacity."""

        kind = EntityKind(kind)
        progress = _Progress("list", kind)
        async with self._session(progress):
            sk = slot_kind(kind)
            state = await self._load(progress, sk)
            records, capacity = _slots(state, sk)
            progress.records = [r for r in records if not sk.store.is_empty(r)]
            progress.slot_ids = [r.id for r in progress.records]
            progress.succeed(
                f"Found {len(progress.records)} active {sk.label.lower()}(s) (total slots: {capacity})."
            )
        return progress.outcome()

    async def get_record(self, kind: EntityKind | str, slot_id: int) -> Outcome:
        """Return the record at ``slot_id``; an empty slot counts as not found."""

        kind = EntityKind(kind)
        progress = _Progress("get", kind)
        async with self._session(progress):
            sk = slot_kind(kind)
            progress.slot_id = slot_id
            state = await self._load(progress, sk)
            records, capacity = _slots(state, sk)
            sk.store.check_range(slot_id, capacity)
            record = sk.store.find(records, slot_id)
            if record is None or sk.store.is_empty(record):
                raise NotFound(slot_id, label=sk.label)
            progress.records = [record]
            progress.slot_ids = [slot_id]
            progress.succeed(f"{sk.label} {slot_id} found.")
        return progress.outcome()

    # device steps

    @asynccontextmanager
    async def _session(self, progress: _Progress) -> AsyncIterator[None]:
        try:
            yield
        except DeviceIOError as exc:
            logger.debug("device error during %s %s", progress.command, progress.kind.value, exc_info=True)
            progress.fail(
                CommitState.DEVICE_IO_FAILED, exc, f"An unexpected error occurred: {exc}"
            )
        except KeybardError as exc:
            progress.fail(CommitState.VALIDATION_FAILED, exc, str(exc))
        finally:
            try:
                await self.device.close()
            except Exception as exc:
                logger.warning("closing the device failed: %s", exc)
                progress.fail(
                    CommitState.DEVICE_IO_FAILED,
                    DeviceIOError(str(exc)),
                    f"An unexpected error occurred: {exc}",
                )

    async def _call(self, step: Callable[..., Awaitable[Any]], *args: Any) -> Any:
        try:
            return await step(*args)
        except Exception as exc:
            raise DeviceIOError(str(exc)) from exc

    async def _load(self, progress: _Progress, sk: SlotKind) -> DeviceState:
        state = DeviceState()
        await self._call(self.device.init, state)
        await self._call(self.device.load, state)

        missing = [
            name for name in (sk.count_field, sk.records_field) if getattr(state, name) is None
        ]
        if missing:
            raise DataNotPopulated(sk.label, missing)

        progress.capacity = getattr(state, sk.count_field)
        progress.advance(CommitState.LOADED)
        return state

    async def _push(self, progress: _Progress, state: DeviceState, sk: SlotKind, slot_id: int) -> None:
        logger.debug("pushing %s %d", sk.kind.value, slot_id)
        await self._call(self.device.push_one, state, sk.kind, slot_id)
        progress.advance(CommitState.PUSHED)

    async def _save(self, progress: _Progress, sk: SlotKind) -> None:
        if sk.kind in self._capabilities.saves:
            await self._call(self.device.save, sk.kind)
        elif self._capabilities.generic_save:
            await self._call(self.device.save, None)
        else:
            warning = (
                f"No save function available for {sk.label.lower()}s. "
                "Changes might be volatile or rely on firmware auto-save."
            )
            logger.warning(warning)
            progress.warnings.append(warning)
            progress.advance(CommitState.SAVE_SKIPPED)
            return
        logger.debug("saved %s", sk.kind.value)
        progress.advance(CommitState.SAVED)


def _slots(state: DeviceState, sk: SlotKind) -> tuple[List[Record], int]:
    return list(getattr(state, sk.records_field)), getattr(state, sk.count_field)
