from journal_api.models.action import Action, ActionOption, ActionValidation
from journal_api.models.entry import FieldValue, JournalEntry, Scalar
from journal_api.models.structure import (
    DeletedElements,
    Field,
    FieldType,
    FieldTypeKind,
    Group,
    StructureVersion,
)

__all__ = [
    "Action",
    "ActionOption",
    "ActionValidation",
    "DeletedElements",
    "Field",
    "FieldType",
    "FieldTypeKind",
    "FieldValue",
    "Group",
    "JournalEntry",
    "Scalar",
    "StructureVersion",
]
