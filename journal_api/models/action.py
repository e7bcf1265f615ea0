"""Action (one-tap shortcut) models"""
from typing import Optional, Union
from uuid import uuid4

from pydantic import Field

from journal_api.models.base import JournalModel


class ActionOption(JournalModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    field_type_id: str
    increment: Optional[Union[int, float]] = None
    is_custom: bool = False


class Action(JournalModel):
    """A shortcut that mutates today's entry for one field"""
    id: str
    user_id: Optional[str] = None
    name: str
    description: str = ""
    field_id: str
    options: Optional[list[ActionOption]] = None
    order: int = 0
    is_daily_action: bool = False
    last_triggered_date: Optional[str] = None
    created_at: str
    updated_at: Optional[str] = None

    def field_type_ids(self) -> list[str]:
        return [option.field_type_id for option in self.options or []]


class ActionValidation(JournalModel):
    """Whether an action still resolves against the current structure"""
    is_valid: bool
    reason: Optional[str] = None
    missing_field_type_ids: list[str] = Field(default_factory=list)
