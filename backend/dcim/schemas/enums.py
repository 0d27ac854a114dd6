from pydantic import BaseModel, field_validator
from typing import Optional
import re


def _validate_color(v: Optional[str]) -> Optional[str]:
    if v is not None and not re.match(r"^#[0-9a-fA-F]{6}$", v):
        raise ValueError("Color must be a hex value like #1f2937")
    return v


class EnumValueCreate(BaseModel):
    value: str
    color: Optional[str] = None

    @field_validator("value")
    @classmethod
    def validate_value(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Value must not be empty")
        return v

    @field_validator("color")
    @classmethod
    def validate_color(cls, v: Optional[str]) -> Optional[str]:
        return _validate_color(v)


class EnumColorUpdate(BaseModel):
    color: Optional[str] = None

    @field_validator("color")
    @classmethod
    def validate_color(cls, v: Optional[str]) -> Optional[str]:
        return _validate_color(v)


class EnumValueResponse(BaseModel):
    id: int
    enum_key: str
    value: str
    sort_order: int
    color: Optional[str] = None

    model_config = {"from_attributes": True}
