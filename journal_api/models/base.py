"""Shared base model for records exchanged with the client and the store"""
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class JournalModel(BaseModel):
    """camelCase on the wire, snake_case in Python"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_item(self) -> dict:
        """JSON-ready dict using wire (camelCase) names"""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
