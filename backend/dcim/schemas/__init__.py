from dcim.schemas.property import (
    PropertyType, PropertyOptions, OptionChoice, PropertyDefinitionData,
    PropertyCreate, PropertyUpdate, PropertyResponse, canonical_options,
)
from dcim.schemas.server import ServerCore, ServerResponse, ServerPositionHistoryResponse, CORE_SERVER_KEYS
from dcim.schemas.enums import EnumValueCreate, EnumColorUpdate, EnumValueResponse
from dcim.schemas.rack import (
    RackCreate, RackResponse, RackServer, RackLayoutResponse,
    AvailabilityRequest, AvailabilityResponse,
)
from dcim.schemas.audit import AuditLogResponse
from dcim.schemas.form import DynamicFormField, FormSchemaResponse, FormValidationResponse

__all__ = [
    "PropertyType", "PropertyOptions", "OptionChoice", "PropertyDefinitionData",
    "PropertyCreate", "PropertyUpdate", "PropertyResponse", "canonical_options",
    "ServerCore", "ServerResponse", "ServerPositionHistoryResponse", "CORE_SERVER_KEYS",
    "EnumValueCreate", "EnumColorUpdate", "EnumValueResponse",
    "RackCreate", "RackResponse", "RackServer", "RackLayoutResponse",
    "AvailabilityRequest", "AvailabilityResponse",
    "AuditLogResponse",
    "DynamicFormField", "FormSchemaResponse", "FormValidationResponse",
]
