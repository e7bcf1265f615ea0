"""Journal entry models"""
from typing import Optional, Union

from pydantic import Field, field_validator

from journal_api.models.base import JournalModel
from journal_api.utils.datetime_helpers import validate_date_string

Scalar = Union[bool, int, float, str, None]


class FieldValue(JournalModel):
    """The value recorded for one field type of one field"""
    group_id: str
    field_id: str
    field_type_id: str
    value: Scalar = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def key(self) -> tuple[str, str]:
        return self.field_id, self.field_type_id

    def to_item(self) -> dict:
        # null is a recorded value, keep the key
        item = super().to_item()
        item["value"] = self.value
        return item


class JournalEntry(JournalModel):
    """One entry per (user, date)"""
    id: Optional[str] = None
    user_id: Optional[str] = None
    date: str
    structure_id: Optional[str] = None
    values: list[FieldValue] = Field(default_factory=list)
    created_at: str
    updated_at: str

    @field_validator("date")
    @classmethod
    def check_date(cls, v: str) -> str:
        return validate_date_string(v)

    def find_value(self, field_id: str, field_type_id: str) -> Optional[FieldValue]:
        for value in self.values:
            if value.field_id == field_id and value.field_type_id == field_type_id:
                return value
        return None

    def to_item(self) -> dict:
        item = super().to_item()
        item["values"] = [value.to_item() for value in self.values]
        return item
