from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import List, Optional
from dcim.config import settings
from dcim.database import get_db
from dcim.middleware.actor import Actor, get_actor
from dcim.models.rack import Rack
from dcim.models.server import Server
from dcim.schemas.rack import (
    AvailabilityRequest, AvailabilityResponse, RackCreate, RackLayoutResponse,
    RackResponse, RackServer, RackSlotResponse, RackStatisticsResponse,
)
from dcim.services.audit import log_audit
from dcim.services.rack_layout import build_rack_layout, check_availability, rack_statistics

router = APIRouter(prefix="/api/racks", tags=["Racks"])


async def _rack_contents(db: AsyncSession, rack_name: str):
    """Servers in the rack and the rack's height (racks without metadata use the default)."""
    rack = await db.execute(select(Rack).where(Rack.name == rack_name))
    rack = rack.scalar_one_or_none()
    result = await db.execute(select(Server).where(Server.rack == rack_name))
    servers = [RackServer.model_validate(s) for s in result.scalars().all()]
    return servers, rack.total_units if rack else settings.RACK_UNITS


@router.get("/", response_model=List[RackResponse])
async def list_racks(datacenter: Optional[str] = None, db: AsyncSession = Depends(get_db)):
    query = select(Rack).order_by(Rack.name)
    if datacenter:
        query = query.where(Rack.datacenter == datacenter)
    result = await db.execute(query)
    return result.scalars().all()


@router.post("/", response_model=RackResponse, status_code=201)
async def create_rack(
    payload: RackCreate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    existing = await db.execute(select(Rack).where(Rack.name == payload.name))
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=400, detail="Rack already exists")

    rack = Rack(**payload.model_dump(), total_units=settings.RACK_UNITS)
    db.add(rack)
    await db.commit()
    await db.refresh(rack)

    await log_audit(
        db, "rack_created",
        username=actor.username, source_ip=actor.source_ip,
        resource_type="rack", resource_id=rack.name,
    )
    return rack


@router.get("/{rack_name}", response_model=RackResponse)
async def get_rack(rack_name: str, db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Rack).where(Rack.name == rack_name))
    rack = result.scalar_one_or_none()
    if not rack:
        raise HTTPException(status_code=404, detail="Rack not found")
    return rack


@router.get("/{rack_name}/layout", response_model=RackLayoutResponse)
async def get_rack_layout(rack_name: str, db: AsyncSession = Depends(get_db)):
    """Top-to-bottom render list for the rack view plus occupancy statistics."""
    servers, total_units = await _rack_contents(db, rack_name)
    slots = [
        RackSlotResponse(unit=s.unit, height=s.height, is_empty=s.is_empty, server=s.server)
        for s in build_rack_layout(servers, total_units)
    ]
    return RackLayoutResponse(
        rack=rack_name,
        total_units=total_units,
        slots=slots,
        statistics=RackStatisticsResponse(**rack_statistics(servers, total_units)),
    )


@router.post("/{rack_name}/availability", response_model=AvailabilityResponse)
async def check_rack_availability(
    rack_name: str,
    payload: AvailabilityRequest,
    db: AsyncSession = Depends(get_db),
):
    servers, total_units = await _rack_contents(db, rack_name)
    result = check_availability(
        servers, payload.position, payload.unit_height,
        total_units=total_units, exclude_id=payload.exclude_server_id,
    )
    suggestion = None
    if result.suggestion:
        position, reason = result.suggestion
        suggestion = {"position": position, "reason": reason}
    return AvailabilityResponse(
        available=result.available,
        conflicting_servers=result.conflicting_servers,
        free_spaces=[vars(s) for s in result.free_spaces],
        suggestion=suggestion,
    )
