from dcim.models.property import PropertyDefinition
from dcim.models.enum_value import EnumValue
from dcim.models.server import Server
from dcim.models.rack import Rack
from dcim.models.audit import AuditLog
from dcim.models.position_history import ServerPositionHistory

__all__ = [
    "PropertyDefinition",
    "EnumValue",
    "Server",
    "Rack",
    "AuditLog",
    "ServerPositionHistory",
]
