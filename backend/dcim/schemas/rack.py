from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from datetime import datetime
from dcim.config import settings


class RackCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    datacenter: Optional[str] = None
    floor: Optional[int] = None
    room: Optional[str] = None
    description: Optional[str] = None


class RackResponse(BaseModel):
    id: int
    name: str
    datacenter: Optional[str] = None
    floor: Optional[int] = None
    room: Optional[str] = None
    description: Optional[str] = None
    total_units: int
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class RackServer(BaseModel):
    """The part of a server record the rack views care about."""
    id: int
    hostname: str
    position: Optional[int] = None
    unit_height: int = 1
    status: Optional[str] = None
    device_type: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    serial_number: Optional[str] = None
    ip_address: Optional[str] = None

    model_config = {"from_attributes": True}


class RackSlotResponse(BaseModel):
    unit: int
    height: int
    is_empty: bool
    server: Optional[RackServer] = None


class RackStatisticsResponse(BaseModel):
    total_servers: int
    occupied_units: int
    available_units: int
    utilization_percent: int
    servers_by_status: Dict[str, int]


class RackLayoutResponse(BaseModel):
    rack: str
    total_units: int
    slots: List[RackSlotResponse]
    statistics: RackStatisticsResponse


class AvailabilityRequest(BaseModel):
    position: int = Field(ge=1, le=settings.RACK_UNITS)
    unit_height: int = Field(1, ge=1, le=settings.RACK_UNITS)
    exclude_server_id: Optional[int] = None


class FreeSpaceResponse(BaseModel):
    start_unit: int
    end_unit: int
    size: int


class SuggestionResponse(BaseModel):
    position: int
    reason: str


class AvailabilityResponse(BaseModel):
    available: bool
    conflicting_servers: List[RackServer] = []
    free_spaces: List[FreeSpaceResponse] = []
    suggestion: Optional[SuggestionResponse] = None
