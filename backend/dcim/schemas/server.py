from pydantic import BaseModel, Field, StrictInt, StrictStr, StringConstraints
from typing import Annotated, Any, Dict, Optional
from datetime import datetime
from dcim.config import settings

NonEmptyStr = Annotated[StrictStr, StringConstraints(min_length=1)]
RackUnit = Annotated[StrictInt, Field(ge=1, le=settings.RACK_UNITS)]

# Labels used when templating validation messages for core fields
CORE_FIELD_LABELS = {
    "hostname": "Hostname",
    "serial_number": "Serial Number",
    "status": "Status",
    "device_type": "Device Type",
    "dc_site": "Site",
    "brand": "Brand",
    "model": "Model",
    "ip_address": "IP Address",
    "notes": "Notes",
    "rack": "Rack",
    "position": "Position",
    "unit_height": "Unit Height",
}


class ServerCore(BaseModel):
    """Fixed, non-customizable server fields.

    Dynamic property validators are layered on top of this model; a
    property definition may never reuse one of these keys.
    """
    hostname: NonEmptyStr
    serial_number: Optional[StrictStr] = None
    status: NonEmptyStr = "Active"
    device_type: NonEmptyStr
    dc_site: NonEmptyStr
    brand: Optional[StrictStr] = None
    model: Optional[StrictStr] = None
    ip_address: Optional[StrictStr] = None
    notes: Optional[StrictStr] = None
    rack: Optional[StrictStr] = None
    position: Optional[RackUnit] = None
    unit_height: RackUnit = 1


CORE_SERVER_KEYS = frozenset(ServerCore.model_fields)


class ServerResponse(BaseModel):
    id: int
    hostname: str
    serial_number: Optional[str] = None
    status: str
    device_type: str
    dc_site: str
    brand: Optional[str] = None
    model: Optional[str] = None
    ip_address: Optional[str] = None
    notes: Optional[str] = None
    rack: Optional[str] = None
    position: Optional[int] = None
    unit_height: int
    properties: Dict[str, Any] = {}
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ServerPositionHistoryResponse(BaseModel):
    id: int
    server_id: int
    previous_site: Optional[str] = None
    previous_rack: Optional[str] = None
    previous_position: Optional[int] = None
    previous_unit_height: Optional[int] = None
    new_site: Optional[str] = None
    new_rack: Optional[str] = None
    new_position: Optional[int] = None
    new_unit_height: Optional[int] = None
    changed_by: Optional[str] = None
    notes: Optional[str] = None
    changed_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
