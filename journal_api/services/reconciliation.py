"""
Reconciliation of actions and entry values against a structure version

Actions and field values reference structure elements by id only. After a
structure edit those ids may dangle; these pure functions decide what is
still usable. Nothing here deletes user data.
"""
import logging
from typing import Iterable

from journal_api.models import Action, ActionValidation, FieldValue, StructureVersion

logger = logging.getLogger(__name__)


def validate_action(action: Action, structure: StructureVersion) -> ActionValidation:
    """
    Check an action's field and every option's field type against a structure

    Returns:
        ActionValidation with is_valid False when the target field is gone or
        any option points at a field type the field no longer has
    """
    found = structure.find_field(action.field_id)
    if found is None:
        return ActionValidation(
            is_valid=False,
            reason=f"Field {action.field_id} is not part of the current structure",
        )

    field, _ = found
    known_ids = field.field_type_ids()
    missing = [ft_id for ft_id in action.field_type_ids() if ft_id not in known_ids]
    if missing:
        return ActionValidation(
            is_valid=False,
            reason=f"Field types {', '.join(missing)} are not part of field {field.name}",
            missing_field_type_ids=missing,
        )

    return ActionValidation(is_valid=True)


def filter_actions(actions: Iterable[Action], structure: StructureVersion) -> list[Action]:
    """Keep the actions that still resolve; log the others"""
    valid = []
    for action in actions:
        validation = validate_action(action, structure)
        if validation.is_valid:
            valid.append(action)
        else:
            logger.warning(
                f"Skipping action {action.id} ({action.name}) for structure "
                f"{structure.structure_id}: {validation.reason}"
            )
    return valid


def filter_entry_values(values: Iterable[FieldValue], structure: StructureVersion) -> list[FieldValue]:
    """Keep the values whose field type exists in the structure"""
    known_ids = structure.field_type_ids()
    values = list(values)
    kept = [value for value in values if value.field_type_id in known_ids]
    if len(kept) != len(values):
        logger.info(
            f"Dropped {len(values) - len(kept)} values not in structure {structure.structure_id}"
        )
    return kept
