"""
Pydantic models for API requests.

Attribute names are matched case-insensitively: keys are lower-cased before
validation. Unknown attributes are rejected. Every field is optional at this
layer; which fields are required depends on the operation (create, full or
partial update) and is checked by the use cases.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, model_validator

from fleet.validation import lowercase_keys


class CaseInsensitiveRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="before")
    @classmethod
    def lowercase_attribute_names(cls, data: Any) -> Any:
        return lowercase_keys(data)


class BoatRequest(CaseInsensitiveRequest):
    name: Optional[str] = None
    type: Optional[str] = None
    length: Optional[int] = None
    public: Optional[bool] = None


class LoadRequest(CaseInsensitiveRequest):
    volume: Optional[int] = None
    content: Optional[str] = None
    creation_date: Optional[str] = None
