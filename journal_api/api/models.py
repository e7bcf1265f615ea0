"""Pydantic models for API request/response validation"""
from typing import Optional
from pydantic import Field, field_validator

from journal_api.models import (
    Action,
    ActionOption,
    ActionValidation,
    DeletedElements,
    FieldValue,
    Group,
    JournalEntry,
    Scalar,
)
from journal_api.models.base import JournalModel
from journal_api.utils.datetime_helpers import to_date_string, validate_date_string


class SaveStructureRequest(JournalModel):
    """Request to save the journal structure"""
    groups: list[Group] = Field(..., description="Complete ordered group list")
    deleted_elements: Optional[DeletedElements] = Field(
        default=None,
        description="Ids of groups, fields and field types removed by this save"
    )
    current_date: Optional[str] = Field(
        default=None,
        description="Client's local date (YYYY-MM-DD or ISO-8601); effective date of a new version"
    )

    @field_validator("current_date")
    @classmethod
    def normalize_current_date(cls, v: Optional[str]) -> Optional[str]:
        return to_date_string(v) if v else None


class SaveEntryRequest(JournalModel):
    """Request to save the entry for a date"""
    date: str = Field(..., description="YYYY-MM-DD")
    values: list[FieldValue] = Field(..., description="Complete value list for the date")

    @field_validator("date")
    @classmethod
    def check_date(cls, v: str) -> str:
        return validate_date_string(v)


class QuickFillRequest(JournalModel):
    """Request to copy the previous day's values onto date"""
    date: str = Field(..., description="Target date, YYYY-MM-DD")

    @field_validator("date")
    @classmethod
    def check_date(cls, v: str) -> str:
        return validate_date_string(v)


class FirstEntryDateResponse(JournalModel):
    date: str


class AddActionRequest(JournalModel):
    """Request to create an action"""
    name: str = Field(..., min_length=1, description="Label shown on the shortcut")
    description: str = ""
    field_id: str = Field(..., description="Target field")
    options: Optional[list[ActionOption]] = None
    is_daily_action: bool = False


class ActionIdRequest(JournalModel):
    id: str = Field(..., min_length=1)


class RegisterActionRequest(JournalModel):
    """Request to trigger an action"""
    id: str = Field(..., min_length=1)
    value: Scalar = Field(default=None, description="Value for custom options")


class ReorderActionRequest(JournalModel):
    id: str = Field(..., min_length=1)
    order: int


class ActionWithValidation(Action):
    """Action plus whether it still resolves against the active structure"""
    validation: ActionValidation


class SuccessResponse(JournalModel):
    success: bool = True


class RegisterActionResponse(JournalModel):
    success: bool = True
    entry: JournalEntry


class QuickFillResponse(JournalModel):
    success: bool = True
    entry: JournalEntry


class HealthCheckResponse(JournalModel):
    """Health check response"""
    status: str
    store: str
    timestamp: str


class ErrorResponse(JournalModel):
    """Error response"""
    message: str
    error: Optional[str] = None
    request_id: Optional[str] = None
