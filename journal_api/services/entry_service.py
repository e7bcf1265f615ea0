"""
EntryStore - Daily Journal Entries

One entry per (user, date), created lazily on first write. Writes to an
existing entry replace its values wholesale (last write wins); structureId
and createdAt never change after creation.
"""

import logging
from typing import Iterable, Optional
from uuid import uuid4

from journal_api.db import keys
from journal_api.db.kv_store import KeyValueStore
from journal_api.exceptions import RecordNotFoundError, ValidationError
from journal_api.models import FieldValue, JournalEntry
from journal_api.observability.metrics import entry_saves_total
from journal_api.services.reconciliation import filter_entry_values
from journal_api.services.structure_service import StructureRegistry
from journal_api.utils.datetime_helpers import (
    current_timestamp,
    previous_date,
    validate_date_string,
)

logger = logging.getLogger(__name__)


def _check_unique(values: Iterable[FieldValue]) -> None:
    seen = set()
    for value in values:
        if value.key in seen:
            raise ValidationError(
                message=f"Duplicate value for field {value.field_id} / field type {value.field_type_id}",
                field="values",
                value=value.field_type_id,
            )
        seen.add(value.key)


def _stamp(values: Iterable[FieldValue], now: str) -> list[FieldValue]:
    return [
        value.model_copy(update={
            "created_at": value.created_at or now,
            "updated_at": value.updated_at or now,
        })
        for value in values
    ]


class EntryStore:
    """Service for reading and writing journal entries"""

    def __init__(self, store: KeyValueStore, registry: StructureRegistry):
        self.store = store
        self.registry = registry

    async def _load(self, user_id: str, date: str) -> Optional[JournalEntry]:
        item = await self.store.get(keys.entries_pk(user_id), keys.entry_sk(date))
        return JournalEntry.model_validate(item) if item else None

    async def get_or_create_entry(self, user_id: str, date: str) -> tuple[JournalEntry, bool]:
        """
        Stored entry for date, or an unsaved empty template.

        Returns:
            (entry, is_new); nothing is persisted when is_new is True
        """
        validate_date_string(date)
        entry = await self._load(user_id, date)
        if entry is not None:
            return entry, False

        now = current_timestamp()
        template = JournalEntry(
            id=str(uuid4()),
            user_id=user_id,
            date=date,
            values=[],
            created_at=now,
            updated_at=now,
        )
        return template, True

    async def get_entry(self, user_id: str, date: str) -> JournalEntry:
        """
        Entry for date; a missing entry comes back as an empty template
        stamped with the structure effective on that date, or with no
        structureId when the user has no structure yet
        """
        entry, is_new = await self.get_or_create_entry(user_id, date)
        if not is_new:
            return entry

        try:
            structure = await self.registry.get_structure_for_date(user_id, date)
        except RecordNotFoundError:
            logger.debug(f"No structure for user {user_id}, returning bare template for {date}")
            return entry
        entry.structure_id = structure.structure_id
        return entry

    async def write_entry(
        self,
        user_id: str,
        entry: JournalEntry,
        is_new: bool,
        operation: Optional[str] = None,
    ) -> JournalEntry:
        """
        Persist an entry obtained from get_or_create_entry.

        New entries are inserted whole. Existing entries only get their
        values and updatedAt replaced.
        """
        now = current_timestamp()
        sk = keys.entry_sk(entry.date)

        if is_new:
            structure_id = entry.structure_id
            if structure_id is None:
                active = await self.registry.get_active_structure(user_id)
                if active is None:
                    raise RecordNotFoundError(
                        message="No journal structure found. Please create one first.",
                        record_type="structure",
                        user_id=user_id,
                        operation="write_entry",
                    )
                structure_id = active.structure_id
            entry = entry.model_copy(update={
                "user_id": user_id,
                "structure_id": structure_id,
                "values": _stamp(entry.values, now),
                "created_at": now,
                "updated_at": now,
            })
            await self.store.put(keys.entries_pk(user_id), sk, entry.to_item())
            entry_saves_total.labels(operation=operation or "insert").inc()
            logger.info(f"Created entry {entry.date} for user {user_id} ({len(entry.values)} values)")
            return entry

        item = await self.store.update(
            keys.entries_pk(user_id),
            sk,
            {
                "values": [value.to_item() for value in _stamp(entry.values, now)],
                "updatedAt": now,
            },
        )
        entry_saves_total.labels(operation=operation or "update").inc()
        logger.info(f"Updated entry {entry.date} for user {user_id} ({len(entry.values)} values)")
        return JournalEntry.model_validate(item)

    async def save_entry(
        self,
        user_id: str,
        date: str,
        values: list[FieldValue],
        structure_id: Optional[str] = None,
    ) -> tuple[JournalEntry, bool]:
        """
        Insert or update the entry for date.

        Args:
            user_id: Owner of the entry
            date: YYYY-MM-DD
            values: Complete value list; replaces what is stored
            structure_id: Structure for a new entry (defaults to the active one)

        Returns:
            (entry, created)

        Raises:
            ValidationError: If two values share (fieldId, fieldTypeId)
            RecordNotFoundError: If a new entry has no structure to attach to
        """
        _check_unique(values)
        entry, is_new = await self.get_or_create_entry(user_id, date)
        entry.values = list(values)
        if is_new and structure_id is not None:
            entry.structure_id = structure_id
        saved = await self.write_entry(user_id, entry, is_new)
        return saved, is_new

    async def get_first_entry_date(self, user_id: str) -> Optional[str]:
        items = await self.store.query(
            keys.entries_pk(user_id), keys.ENTRY_PREFIX, limit=1, ascending=True
        )
        return items[0]["date"] if items else None

    async def quick_fill(self, user_id: str, target_date: str) -> JournalEntry:
        """
        Carry the previous day's values forward to target_date.

        Values whose field type is not in the structure effective on
        target_date are dropped. Existing values on target_date are replaced.

        Raises:
            RecordNotFoundError: If there is no entry for the previous day
        """
        source_date = previous_date(target_date)
        source = await self._load(user_id, source_date)
        if source is None:
            raise RecordNotFoundError(
                message=f"No entry found for {source_date}",
                record_type="entry",
                record_id=source_date,
                user_id=user_id,
                operation="quick_fill",
            )

        structure = await self.registry.get_structure_for_date(user_id, target_date)
        now = current_timestamp()
        values = [
            value.model_copy(update={"created_at": now, "updated_at": now})
            for value in filter_entry_values(source.values, structure)
        ]

        entry, is_new = await self.get_or_create_entry(user_id, target_date)
        if is_new:
            entry.structure_id = structure.structure_id
        entry.values = values
        logger.info(
            f"Quick-filling {target_date} from {source_date} for user {user_id}: "
            f"{len(values)} of {len(source.values)} values kept"
        )
        return await self.write_entry(user_id, entry, is_new, operation="quick_fill")
