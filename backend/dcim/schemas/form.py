from pydantic import BaseModel
from typing import Any, Dict, List, Optional
from dcim.schemas.property import OptionChoice


class DynamicFormField(BaseModel):
    """Render-ready projection of a property definition."""
    key: str
    name: str
    display_name: str
    kind: str                      # Renderer to use; "enum" properties render as "select"
    property_type: str
    required: bool
    default_value: Any = None
    options: List[OptionChoice] = []
    category: Optional[str] = None
    description: Optional[str] = None
    placeholder: Optional[str] = None


class FormSchemaResponse(BaseModel):
    fields: List[DynamicFormField]
    default_values: Dict[str, Any]
    json_schema: Dict[str, Any]


class FormValidationResponse(BaseModel):
    success: bool
    data: Optional[Dict[str, Any]] = None
    errors: Dict[str, List[str]] = {}
