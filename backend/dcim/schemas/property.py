from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator
from typing import Any, List, Optional
from datetime import datetime
import enum
import json
import re
from dcim.schemas.server import CORE_SERVER_KEYS


class PropertyType(str, enum.Enum):
    text = "text"
    number = "number"
    boolean = "boolean"
    date = "date"
    select = "select"
    multiselect = "multiselect"
    enum = "enum"


CHOICE_TYPES = {PropertyType.select, PropertyType.multiselect, PropertyType.enum}


class OptionChoice(BaseModel):
    value: str
    label: str


class PropertyOptions(BaseModel):
    """Canonical shape of a definition's ``options`` column.

    Raw values are a flat list of choices or an object with an ``options``
    list plus validation constraints; both are folded into this model by
    ``canonical_options`` before anything else reads them.
    """
    choices: List[OptionChoice] = []

    # number
    min: Optional[float] = None
    max: Optional[float] = None
    step: Optional[float] = None

    # text
    min_length: Optional[int] = Field(None, validation_alias=AliasChoices("min_length", "minLength"))
    max_length: Optional[int] = Field(None, validation_alias=AliasChoices("max_length", "maxLength"))
    pattern: Optional[str] = None
    pattern_message: Optional[str] = Field(
        None, validation_alias=AliasChoices("pattern_message", "patternMessage")
    )

    # multiselect
    min_items: Optional[int] = Field(None, validation_alias=AliasChoices("min_items", "minItems"))
    max_items: Optional[int] = Field(None, validation_alias=AliasChoices("max_items", "maxItems"))

    model_config = {"extra": "ignore"}

    @property
    def values(self) -> List[str]:
        return [c.value for c in self.choices]


def _choice(item: Any) -> OptionChoice:
    if isinstance(item, OptionChoice):
        return item
    if isinstance(item, dict):
        if item.get("value") is None:
            raise ValueError("each option needs a 'value'")
        value = str(item["value"])
        return OptionChoice(value=value, label=str(item.get("label") or value))
    return OptionChoice(value=str(item), label=str(item))


def canonical_options(raw: Any) -> PropertyOptions:
    if raw is None:
        return PropertyOptions()
    if isinstance(raw, PropertyOptions):
        return raw
    if isinstance(raw, list):
        return PropertyOptions(choices=[_choice(i) for i in raw])
    if isinstance(raw, dict):
        data = dict(raw)
        items = data.pop("options", None)
        if items is None:
            items = data.pop("choices", None) or []
        if not isinstance(items, list):
            raise ValueError("options.options must be a list")
        data["choices"] = [_choice(i) for i in items]
        return PropertyOptions.model_validate(data)
    raise ValueError("options must be a list or an object with an 'options' list")


FIELD_PREFIX = "prop_"


def model_field_name(key: str) -> str:
    """Attribute name of the property on the generated form model.

    Keys such as "json" or "copy" would shadow BaseModel attributes and are
    prefixed; the key itself stays the field's alias.
    """
    if key.startswith("model_") or hasattr(BaseModel, key):
        return f"{FIELD_PREFIX}{key}"
    return key


class PropertyDefinitionData(BaseModel):
    """A property definition as read by the form schema builder."""
    key: str
    name: str
    display_name: str
    property_type: str = "text"
    required: bool = False
    default_value: Optional[str] = None
    options: PropertyOptions = PropertyOptions()
    category: Optional[str] = None
    description: Optional[str] = None

    model_config = {"from_attributes": True}

    @field_validator("options", mode="before")
    @classmethod
    def resolve_options(cls, v: Any) -> PropertyOptions:
        return canonical_options(v)


class PropertyResponse(PropertyDefinitionData):
    id: int
    active: bool
    sort_order: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


def _stringify_default(v: Any) -> Optional[str]:
    if v is None or isinstance(v, str):
        return v
    if isinstance(v, bool):
        return "true" if v else "false"
    if isinstance(v, (list, dict)):
        return json.dumps(v)
    return str(v)


class PropertyCreate(BaseModel):
    key: str
    name: Optional[str] = None
    display_name: str
    property_type: PropertyType = PropertyType.text
    required: bool = False
    default_value: Optional[str] = None
    options: Optional[PropertyOptions] = None
    category: Optional[str] = None
    description: Optional[str] = None
    sort_order: int = 0

    @field_validator("key")
    @classmethod
    def validate_key(cls, v: str) -> str:
        v = v.strip().lower()
        if not re.match(r"^[a-z][a-z0-9_]{0,99}$", v):
            raise ValueError("Key must start with a letter and contain only lowercase letters, digits and underscores")
        if v in CORE_SERVER_KEYS:
            raise ValueError(f"'{v}' is a core server field and cannot be customized")
        if v.startswith(FIELD_PREFIX) and model_field_name(v[len(FIELD_PREFIX):]) == v:
            raise ValueError(f"'{v}' is reserved for the '{v[len(FIELD_PREFIX):]}' property")
        return v

    @field_validator("default_value", mode="before")
    @classmethod
    def validate_default(cls, v: Any) -> Optional[str]:
        return _stringify_default(v)

    @field_validator("options", mode="before")
    @classmethod
    def validate_options(cls, v: Any) -> Optional[PropertyOptions]:
        return None if v is None else canonical_options(v)

    @model_validator(mode="after")
    def default_name(self):
        if not self.name:
            self.name = self.key
        return self


class PropertyUpdate(BaseModel):
    name: Optional[str] = None
    display_name: Optional[str] = None
    property_type: Optional[PropertyType] = None
    required: Optional[bool] = None
    default_value: Optional[str] = None
    options: Optional[PropertyOptions] = None
    category: Optional[str] = None
    description: Optional[str] = None
    active: Optional[bool] = None
    sort_order: Optional[int] = None

    @field_validator("default_value", mode="before")
    @classmethod
    def validate_default(cls, v: Any) -> Optional[str]:
        return _stringify_default(v)

    @field_validator("options", mode="before")
    @classmethod
    def validate_options(cls, v: Any) -> Optional[PropertyOptions]:
        return None if v is None else canonical_options(v)
