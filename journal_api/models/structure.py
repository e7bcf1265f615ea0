"""Journal structure models: groups, fields and typed field types"""
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import Field as PydanticField, field_validator

from journal_api.models.base import JournalModel
from journal_api.utils.datetime_helpers import validate_date_string

CHECK_SUFFIX = "-CHECK"


class FieldTypeKind(str, Enum):
    NUMBER = "NUMBER"
    NUMBER_NAVIGATION = "NUMBER_NAVIGATION"
    TIME_SELECT = "TIME_SELECT"
    SEVERITY = "SEVERITY"
    RANGE = "RANGE"
    CUSTOM_SCALE = "CUSTOM_SCALE"
    CHECK = "CHECK"


# Per-kind configuration ("dataOptions" on the wire)

class NumberOptions(JournalModel):
    min: Optional[float] = None
    max: Optional[float] = None
    unit: Optional[str] = None


class TimeSelectOptions(JournalModel):
    step: int = PydanticField(default=30, gt=0, le=24 * 60)  # minutes


class RangeOptions(JournalModel):
    min: Optional[float] = None
    max: Optional[float] = None
    step: Optional[float] = PydanticField(default=None, gt=0)
    unit: Optional[str] = None


class CustomScaleOptions(JournalModel):
    labels: list[str] = PydanticField(default_factory=lambda: ["Default"])


class EmptyOptions(JournalModel):
    pass


class FieldTypeBase(JournalModel):
    id: str
    field_id: str
    description: Optional[str] = None
    order: int = 0
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("data_options", mode="before", check_fields=False)
    @classmethod
    def default_data_options(cls, v):
        return {} if v is None else v


class NumberFieldType(FieldTypeBase):
    kind: Literal["NUMBER"] = "NUMBER"
    data_options: NumberOptions = PydanticField(default_factory=NumberOptions)


class NumberNavigationFieldType(FieldTypeBase):
    kind: Literal["NUMBER_NAVIGATION"] = "NUMBER_NAVIGATION"
    data_options: NumberOptions = PydanticField(default_factory=NumberOptions)


class TimeSelectFieldType(FieldTypeBase):
    kind: Literal["TIME_SELECT"] = "TIME_SELECT"
    data_options: TimeSelectOptions = PydanticField(default_factory=TimeSelectOptions)


class SeverityFieldType(FieldTypeBase):
    kind: Literal["SEVERITY"] = "SEVERITY"
    data_options: EmptyOptions = PydanticField(default_factory=EmptyOptions)


class RangeFieldType(FieldTypeBase):
    kind: Literal["RANGE"] = "RANGE"
    data_options: RangeOptions = PydanticField(default_factory=RangeOptions)


class CustomScaleFieldType(FieldTypeBase):
    kind: Literal["CUSTOM_SCALE"] = "CUSTOM_SCALE"
    data_options: CustomScaleOptions = PydanticField(default_factory=CustomScaleOptions)


class CheckFieldType(FieldTypeBase):
    kind: Literal["CHECK"] = "CHECK"
    data_options: EmptyOptions = PydanticField(default_factory=EmptyOptions)


FieldType = Annotated[
    Union[
        NumberFieldType,
        NumberNavigationFieldType,
        TimeSelectFieldType,
        SeverityFieldType,
        RangeFieldType,
        CustomScaleFieldType,
        CheckFieldType,
    ],
    PydanticField(discriminator="kind"),
]


class Field(JournalModel):
    """A tracked item; always supports a CHECK completion marker"""
    id: str
    group_id: str
    name: str
    field_types: list[FieldType] = PydanticField(default_factory=list)
    order: int = 0
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def check_type(self) -> CheckFieldType:
        """The authored CHECK field type, or a synthesized one (never stored)"""
        for field_type in self.field_types:
            if field_type.kind == FieldTypeKind.CHECK:
                return field_type
        return CheckFieldType(id=f"{self.id}{CHECK_SUFFIX}", field_id=self.id, order=len(self.field_types))

    def find_field_type(self, kind: FieldTypeKind) -> Optional[FieldType]:
        for field_type in self.field_types:
            if field_type.kind == kind:
                return field_type
        return None

    def field_type_ids(self) -> set[str]:
        ids = {field_type.id for field_type in self.field_types}
        ids.add(self.check_type().id)
        return ids


class Group(JournalModel):
    id: str
    name: str
    fields: list[Field] = PydanticField(default_factory=list)
    order: int = 0
    collapsed_by_default: Optional[bool] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class DeletedElements(JournalModel):
    """Ids removed by a structure save, compared to the prior version"""
    groups: list[str] = PydanticField(default_factory=list)
    fields: list[str] = PydanticField(default_factory=list)
    field_types: list[str] = PydanticField(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.groups or self.fields or self.field_types)

    def all_ids(self) -> set[str]:
        return set(self.groups) | set(self.fields) | set(self.field_types)


class StructureVersion(JournalModel):
    """One timestamped version of a user's journal structure"""
    structure_id: str
    user_id: Optional[str] = None
    is_active: bool
    effective_from: str
    groups: list[Group] = PydanticField(default_factory=list)
    created_at: str
    updated_at: str

    @field_validator("effective_from")
    @classmethod
    def check_effective_from(cls, v: str) -> str:
        return validate_date_string(v)

    def find_field(self, field_id: str) -> Optional[tuple[Field, str]]:
        """Linear scan across groups then fields; returns (field, group id)"""
        for group in self.groups:
            for field in group.fields:
                if field.id == field_id:
                    return field, group.id
        return None

    def field_type_ids(self) -> set[str]:
        """Every field type id, including each field's CHECK marker"""
        ids: set[str] = set()
        for group in self.groups:
            for field in group.fields:
                ids |= field.field_type_ids()
        return ids

    def element_ids(self) -> set[str]:
        """Ids of all groups, fields and authored field types"""
        ids: set[str] = set()
        for group in self.groups:
            ids.add(group.id)
            for field in group.fields:
                ids.add(field.id)
                ids |= {field_type.id for field_type in field.field_types}
        return ids
