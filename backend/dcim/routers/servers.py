from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, desc
from typing import Any, Dict, List, Optional
from dcim.config import settings
from dcim.database import get_db
from dcim.middleware.actor import Actor, get_actor
from dcim.models.position_history import ServerPositionHistory
from dcim.models.rack import Rack
from dcim.models.server import Server
from dcim.schemas.server import CORE_SERVER_KEYS, ServerPositionHistoryResponse, ServerResponse
from dcim.services.audit import log_audit
from dcim.services.form_schema import prepare_submission, split_submission, validate_form_data
from dcim.services.rack_layout import PlacementError, validate_placement
from dcim.services.schema_cache import CachedSchema, schema_cache

router = APIRouter(prefix="/api/servers", tags=["Servers"])


async def _rack_units(db: AsyncSession, rack_name: str) -> int:
    result = await db.execute(select(Rack.total_units).where(Rack.name == rack_name))
    return result.scalar() or settings.RACK_UNITS


def _validate(cached: CachedSchema, record: Dict[str, Any]):
    result = validate_form_data(cached.schema, record)
    if not result.success:
        raise HTTPException(status_code=422, detail={"errors": result.errors})
    data = prepare_submission(result.data, cached.properties)
    return split_submission(data, cached.properties)


async def _check_placement(db: AsyncSession, core: Dict[str, Any], exclude_id: Optional[int] = None):
    if not core.get("rack") or core.get("position") is None:
        return
    result = await db.execute(select(Server).where(Server.rack == core["rack"]))
    try:
        validate_placement(
            result.scalars().all(),
            core["position"],
            core.get("unit_height") or 1,
            total_units=await _rack_units(db, core["rack"]),
            exclude_id=exclude_id,
        )
    except PlacementError as e:
        raise HTTPException(
            status_code=409,
            detail={"message": str(e), "conflicts": [s.hostname for s in e.conflicts]},
        )


def _placement(server: Server) -> Dict[str, Any]:
    return {
        "site": server.dc_site,
        "rack": server.rack,
        "position": server.position,
        "unit_height": server.unit_height,
    }


def _describe(placement: Dict[str, Any]) -> str:
    if not placement["rack"]:
        return f"{placement['site']} (unracked)"
    unit = f"U{placement['position']}" if placement["position"] is not None else "no position"
    return f"{placement['site']}/{placement['rack']} {unit} ({placement['unit_height']}U)"


async def _ensure_unique_hostname(db: AsyncSession, hostname: str, exclude_id: Optional[int] = None):
    query = select(Server).where(Server.hostname == hostname)
    if exclude_id is not None:
        query = query.where(Server.id != exclude_id)
    existing = await db.execute(query)
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=400, detail="Server with this hostname already exists")


@router.get("/", response_model=List[ServerResponse])
async def list_servers(
    rack: Optional[str] = None,
    dc_site: Optional[str] = None,
    status: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
):
    query = select(Server).order_by(Server.hostname)
    if rack:
        query = query.where(Server.rack == rack)
    if dc_site:
        query = query.where(Server.dc_site == dc_site)
    if status:
        query = query.where(Server.status == status)
    result = await db.execute(query)
    return result.scalars().all()


@router.post("/", response_model=ServerResponse, status_code=201)
async def create_server(
    payload: Dict[str, Any] = Body(...),
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    cached = await schema_cache.get(db)
    core, dynamic = _validate(cached, payload)
    await _ensure_unique_hostname(db, core["hostname"])
    await _check_placement(db, core)

    server = Server(**core, properties=dynamic)
    db.add(server)
    await db.commit()
    await db.refresh(server)

    await log_audit(
        db, "server_created",
        username=actor.username, source_ip=actor.source_ip,
        resource_type="server", resource_id=str(server.id),
        details=f"Created server: {server.hostname}",
    )
    return server


@router.get("/{server_id}", response_model=ServerResponse)
async def get_server(server_id: int, db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Server).where(Server.id == server_id))
    server = result.scalar_one_or_none()
    if not server:
        raise HTTPException(status_code=404, detail="Server not found")
    return server


@router.patch("/{server_id}", response_model=ServerResponse)
async def update_server(
    server_id: int,
    payload: Dict[str, Any] = Body(...),
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(select(Server).where(Server.id == server_id))
    server = result.scalar_one_or_none()
    if not server:
        raise HTTPException(status_code=404, detail="Server not found")

    # Validate the whole record as it will look after the update
    record = {key: getattr(server, key) for key in CORE_SERVER_KEYS}
    record.update(server.properties or {})
    record.update(payload)

    cached = await schema_cache.get(db)
    core, dynamic = _validate(cached, record)
    await _ensure_unique_hostname(db, core["hostname"], exclude_id=server_id)
    await _check_placement(db, core, exclude_id=server_id)

    before = _placement(server)
    for key, value in core.items():
        setattr(server, key, value)
    server.properties = {**(server.properties or {}), **dynamic}
    after = _placement(server)

    details = f"Updated fields: {sorted(payload.keys())}"
    if after != before:
        db.add(ServerPositionHistory(
            server_id=server_id,
            previous_site=before["site"],
            previous_rack=before["rack"],
            previous_position=before["position"],
            previous_unit_height=before["unit_height"],
            new_site=after["site"],
            new_rack=after["rack"],
            new_position=after["position"],
            new_unit_height=after["unit_height"],
            changed_by=actor.username,
            notes=payload.get("notes"),
        ))
        details += f"; moved {_describe(before)} -> {_describe(after)}"
    await db.commit()
    await db.refresh(server)

    await log_audit(
        db, "server_updated",
        username=actor.username, source_ip=actor.source_ip,
        resource_type="server", resource_id=str(server_id),
        details=details,
    )
    return server


@router.get("/{server_id}/history", response_model=List[ServerPositionHistoryResponse])
async def get_server_history(server_id: int, db: AsyncSession = Depends(get_db)):
    """Site, rack and unit moves of the server, newest first."""
    result = await db.execute(select(Server.id).where(Server.id == server_id))
    if result.scalar_one_or_none() is None:
        raise HTTPException(status_code=404, detail="Server not found")

    result = await db.execute(
        select(ServerPositionHistory)
        .where(ServerPositionHistory.server_id == server_id)
        .order_by(desc(ServerPositionHistory.changed_at), desc(ServerPositionHistory.id))
    )
    return result.scalars().all()


@router.delete("/{server_id}")
async def delete_server(
    server_id: int,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(select(Server).where(Server.id == server_id))
    server = result.scalar_one_or_none()
    if not server:
        raise HTTPException(status_code=404, detail="Server not found")

    hostname = server.hostname
    await db.execute(delete(ServerPositionHistory).where(ServerPositionHistory.server_id == server_id))
    await db.delete(server)
    await db.commit()

    await log_audit(
        db, "server_deleted",
        username=actor.username, source_ip=actor.source_ip,
        resource_type="server", resource_id=str(server_id),
        details=f"Deleted: {hostname}",
    )
    return {"message": "Server deleted"}
