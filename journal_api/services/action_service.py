"""
ActionEngine - One-Tap Journal Shortcuts

An action targets one field. Registering it mutates today's entry: option
increments or custom values, the field's CHECK marker, and the
TIME_SELECT value when the field has one.
"""

import logging
import math
from typing import Optional, Union
from uuid import uuid4

from journal_api.db import keys
from journal_api.db.kv_store import KeyValueStore
from journal_api.exceptions import RecordNotFoundError, StaleReferenceError
from journal_api.models import (
    Action,
    ActionOption,
    ActionValidation,
    Field,
    FieldTypeKind,
    FieldValue,
    JournalEntry,
    Scalar,
)
from journal_api.observability.metrics import (
    action_registrations_total,
    actions_filtered_total,
)
from journal_api.services.entry_service import EntryStore
from journal_api.services.reconciliation import filter_actions, validate_action
from journal_api.services.structure_service import StructureRegistry
from journal_api.utils.datetime_helpers import (
    DateProvider,
    current_timestamp,
    minutes_since_midnight,
)

logger = logging.getLogger(__name__)

CHECK_MARKER = "CHECK"


# ==========================================
# Value mutation helpers
# ==========================================

def numeric_coerce(value: Scalar) -> Union[int, float]:
    """Numeric view of a stored value; anything non-numeric counts as 0"""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            return 0
        if not math.isfinite(number):
            return 0
        return int(number) if number.is_integer() else number
    return 0


def _find_value(values: list[FieldValue], field_id: str, field_type_id: str) -> Optional[FieldValue]:
    for value in values:
        if value.field_id == field_id and value.field_type_id == field_type_id:
            return value
    return None


def _upsert_value(
    values: list[FieldValue],
    group_id: str,
    field_id: str,
    field_type_id: str,
    new_value: Scalar,
    timestamp: str,
) -> None:
    existing = _find_value(values, field_id, field_type_id)
    if existing is not None:
        existing.value = new_value
        existing.updated_at = timestamp
        return
    values.append(FieldValue(
        group_id=group_id,
        field_id=field_id,
        field_type_id=field_type_id,
        value=new_value,
        created_at=timestamp,
        updated_at=timestamp,
    ))


def apply_option(
    values: list[FieldValue],
    option: ActionOption,
    field_id: str,
    group_id: str,
    supplied: Scalar,
    timestamp: str,
) -> None:
    """
    Apply one action option to the value list in place.

    Existing value: a custom option with a supplied value overwrites it,
    an increment adds to its numeric view. Missing value: created from the
    supplied value, the increment, or 1, in that order.
    """
    existing = _find_value(values, field_id, option.field_type_id)
    use_supplied = option.is_custom and supplied is not None

    if existing is not None:
        if use_supplied:
            existing.value = supplied
        elif option.increment is not None:
            existing.value = numeric_coerce(existing.value) + option.increment
        else:
            return
        existing.updated_at = timestamp
        return

    if use_supplied:
        new_value = supplied
    elif option.increment is not None:
        new_value = option.increment
    else:
        new_value = 1
    _upsert_value(values, group_id, field_id, option.field_type_id, new_value, timestamp)


def mark_check(values: list[FieldValue], field: Field, group_id: str, timestamp: str) -> None:
    """Set the field's CHECK value to true, creating it if needed"""
    check = field.check_type()
    for value in values:
        if value.field_id == field.id and (
            value.field_type_id == check.id or CHECK_MARKER in value.field_type_id
        ):
            value.value = True
            value.updated_at = timestamp
            return
    _upsert_value(values, group_id, field.id, check.id, True, timestamp)


def stamp_time_select(
    values: list[FieldValue], field: Field, group_id: str, now, timestamp: str
) -> None:
    """Record the time of day, rounded down to the TIME_SELECT step"""
    time_type = field.find_field_type(FieldTypeKind.TIME_SELECT)
    if time_type is None:
        return
    step = time_type.data_options.step
    minutes = minutes_since_midnight(now)
    _upsert_value(values, group_id, field.id, time_type.id, minutes - minutes % step, timestamp)


def _stale_error(action: Action, validation: ActionValidation, user_id: str, operation: str):
    return StaleReferenceError(
        message=f"Action {action.id} is stale: {validation.reason}",
        action_id=action.id,
        field_id=action.field_id,
        field_type_id=validation.missing_field_type_ids[0] if validation.missing_field_type_ids else None,
        user_id=user_id,
        operation=operation,
    )


class ActionEngine:
    """
    Service for user actions.

    Responsibilities:
    - Action CRUD (add, remove, reorder, list)
    - Registration: mutating today's entry from an action
    """

    def __init__(
        self,
        store: KeyValueStore,
        registry: StructureRegistry,
        entries: EntryStore,
        date_provider: DateProvider,
    ):
        """
        Initialize ActionEngine.

        Args:
            store: Key-value store holding the actions partition
            registry: Structure versions, for field lookups
            entries: Entry store for today's entry
            date_provider: Supplies today's date and the wall clock
        """
        self.store = store
        self.registry = registry
        self.entries = entries
        self.date_provider = date_provider

    async def _load_actions(self, user_id: str) -> list[Action]:
        items = await self.store.query(keys.actions_pk(user_id), keys.ACTION_PREFIX)
        actions = [Action.model_validate(item) for item in items]
        return sorted(actions, key=lambda a: (a.order, a.created_at))

    async def get_action(self, user_id: str, action_id: str) -> Action:
        item = await self.store.get(keys.actions_pk(user_id), keys.action_sk(action_id))
        if item is None:
            raise RecordNotFoundError(
                message="Action not found",
                record_type="action",
                record_id=action_id,
                user_id=user_id,
                operation="get_action",
            )
        return Action.model_validate(item)

    async def list_actions(self, user_id: str) -> list[Action]:
        """Actions that still resolve against the active structure"""
        actions = await self._load_actions(user_id)
        if not actions:
            return []

        structure = await self.registry.get_active_structure(user_id)
        if structure is None:
            logger.warning(f"User {user_id} has {len(actions)} actions but no structure")
            actions_filtered_total.inc(len(actions))
            return []

        valid = filter_actions(actions, structure)
        if len(valid) != len(actions):
            actions_filtered_total.inc(len(actions) - len(valid))
        return valid

    async def list_all_actions(self, user_id: str) -> list[tuple[Action, ActionValidation]]:
        """Every action paired with its validation against the active structure"""
        actions = await self._load_actions(user_id)
        structure = await self.registry.get_active_structure(user_id)
        if structure is None:
            missing = ActionValidation(is_valid=False, reason="No journal structure exists")
            return [(action, missing) for action in actions]
        return [(action, validate_action(action, structure)) for action in actions]

    async def add_action(
        self,
        user_id: str,
        name: str,
        field_id: str,
        options: Optional[list[ActionOption]] = None,
        description: str = "",
        is_daily_action: bool = False,
    ) -> Action:
        """
        Create an action after the user's existing ones.

        Raises:
            RecordNotFoundError: If the user has no structure
            StaleReferenceError: If the field or an option's field type is
                not in the active structure
        """
        structure = await self.registry.get_active_structure(user_id)
        if structure is None:
            raise RecordNotFoundError(
                message="No journal structure found. Please create one first.",
                record_type="structure",
                user_id=user_id,
                operation="add_action",
            )

        existing = await self._load_actions(user_id)
        now = current_timestamp()
        action = Action(
            id=str(uuid4()),
            user_id=user_id,
            name=name,
            description=description,
            field_id=field_id,
            options=options,
            order=max((a.order for a in existing), default=-1) + 1,
            is_daily_action=is_daily_action,
            created_at=now,
            updated_at=now,
        )

        validation = validate_action(action, structure)
        if not validation.is_valid:
            raise _stale_error(action, validation, user_id, "add_action")

        await self.store.put(keys.actions_pk(user_id), keys.action_sk(action.id), action.to_item())
        logger.info(f"Added action {action.id} ({name}) for user {user_id} on field {field_id}")
        return action

    async def remove_action(self, user_id: str, action_id: str) -> None:
        deleted = await self.store.delete(keys.actions_pk(user_id), keys.action_sk(action_id))
        if not deleted:
            raise RecordNotFoundError(
                message="Action not found",
                record_type="action",
                record_id=action_id,
                user_id=user_id,
                operation="remove_action",
            )
        logger.info(f"Removed action {action_id} for user {user_id}")

    async def reorder_action(self, user_id: str, action_id: str, order: int) -> Action:
        await self.get_action(user_id, action_id)
        item = await self.store.update(
            keys.actions_pk(user_id),
            keys.action_sk(action_id),
            {"order": order, "updatedAt": current_timestamp()},
        )
        logger.info(f"Moved action {action_id} to position {order} for user {user_id}")
        return Action.model_validate(item)

    async def register_action(
        self, user_id: str, action_id: str, value: Scalar = None
    ) -> JournalEntry:
        """
        Trigger an action against today's entry.

        Lookups of the action, today's structure and the target field
        happen before anything is written; a failure there leaves the
        entry untouched.

        Args:
            user_id: Owner of the action
            action_id: Action to trigger
            value: Value for custom options

        Returns:
            The saved entry

        Raises:
            RecordNotFoundError: Unknown action, or no structure
            StaleReferenceError: The action's field or field types are gone
        """
        status = "error"
        try:
            entry = await self._register(user_id, action_id, value)
            status = "success"
            return entry
        except RecordNotFoundError:
            status = "not_found"
            raise
        except StaleReferenceError:
            status = "stale"
            raise
        finally:
            action_registrations_total.labels(status=status).inc()

    async def _register(self, user_id: str, action_id: str, supplied: Scalar) -> JournalEntry:
        action = await self.get_action(user_id, action_id)
        today = self.date_provider.today(user_id)
        entry, is_new = await self.entries.get_or_create_entry(user_id, today)
        structure = await self.registry.get_structure_for_date(user_id, today)

        validation = validate_action(action, structure)
        if not validation.is_valid:
            raise _stale_error(action, validation, user_id, "register_action")
        field, group_id = structure.find_field(action.field_id)

        timestamp = current_timestamp()
        values = [v.model_copy() for v in entry.values]
        for option in action.options or []:
            apply_option(values, option, field.id, group_id, supplied, timestamp)
        mark_check(values, field, group_id, timestamp)
        stamp_time_select(values, field, group_id, self.date_provider.now(user_id), timestamp)

        entry.values = values
        if is_new:
            entry.structure_id = structure.structure_id
        saved = await self.entries.write_entry(user_id, entry, is_new)

        if action.is_daily_action:
            await self.store.update(
                keys.actions_pk(user_id),
                keys.action_sk(action.id),
                {"lastTriggeredDate": today, "updatedAt": timestamp},
            )

        logger.info(f"Registered action {action.id} for user {user_id} on {today}")
        return saved
