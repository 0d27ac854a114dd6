from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from typing import Dict, List
from dcim.config import settings
from dcim.database import get_db
from dcim.extensions import limiter
from dcim.middleware.actor import Actor, get_actor
from dcim.models.enum_value import EnumValue
from dcim.schemas.enums import EnumColorUpdate, EnumValueCreate, EnumValueResponse
from dcim.services.audit import log_audit
from dcim.services.event_bus import COLORS_UPDATED, ENUMS_UPDATED, event_bus
from dcim.services.schema_cache import load_enum_map

router = APIRouter(prefix="/api/enums", tags=["Enums"])


async def _get_value(db: AsyncSession, enum_key: str, value: str) -> EnumValue:
    result = await db.execute(
        select(EnumValue).where(EnumValue.enum_key == enum_key, EnumValue.value == value)
    )
    row = result.scalar_one_or_none()
    if not row:
        raise HTTPException(status_code=404, detail=f"Value '{value}' not found in {enum_key}")
    return row


@router.get("/", response_model=Dict[str, List[str]])
async def get_enums(db: AsyncSession = Depends(get_db)):
    return await load_enum_map(db)


@router.get("/colors", response_model=Dict[str, Dict[str, str]])
async def get_enum_colors(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(EnumValue).where(EnumValue.color.isnot(None)))
    colors: Dict[str, Dict[str, str]] = {}
    for row in result.scalars().all():
        colors.setdefault(row.enum_key, {})[row.value] = row.color
    return colors


@router.get("/{enum_key}", response_model=List[EnumValueResponse])
async def list_enum_values(enum_key: str, db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(EnumValue)
        .where(EnumValue.enum_key == enum_key)
        .order_by(EnumValue.sort_order, EnumValue.id)
    )
    return result.scalars().all()


@router.post("/{enum_key}", response_model=EnumValueResponse, status_code=201)
@limiter.limit(settings.RATE_LIMIT_ENUM_WRITE)
async def add_enum_value(
    request: Request,
    enum_key: str,
    payload: EnumValueCreate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    existing = await db.execute(
        select(EnumValue).where(EnumValue.enum_key == enum_key, EnumValue.value == payload.value)
    )
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=400, detail=f"'{payload.value}' already exists in {enum_key}")

    max_order = await db.execute(
        select(func.max(EnumValue.sort_order)).where(EnumValue.enum_key == enum_key)
    )
    row = EnumValue(
        enum_key=enum_key,
        value=payload.value,
        color=payload.color,
        sort_order=(max_order.scalar() or 0) + 1,
    )
    db.add(row)
    await db.commit()
    await db.refresh(row)

    await log_audit(
        db, "enum_value_added",
        username=actor.username, source_ip=actor.source_ip,
        resource_type="enum", resource_id=enum_key,
        details=f"Added '{row.value}'",
    )
    await event_bus.publish(ENUMS_UPDATED, {"key": enum_key, "value": row.value, "action": "added"})
    if row.color:
        await event_bus.publish(COLORS_UPDATED, {"key": enum_key, "value": row.value, "color": row.color})
    return row


@router.delete("/{enum_key}/{value}")
async def remove_enum_value(
    enum_key: str,
    value: str,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    row = await _get_value(db, enum_key, value)
    await db.delete(row)
    await db.commit()

    await log_audit(
        db, "enum_value_removed",
        username=actor.username, source_ip=actor.source_ip,
        resource_type="enum", resource_id=enum_key,
        details=f"Removed '{value}'",
    )
    await event_bus.publish(ENUMS_UPDATED, {"key": enum_key, "value": value, "action": "removed"})
    return {"message": "Enum value removed"}


@router.put("/{enum_key}/{value}/color", response_model=EnumValueResponse)
async def set_enum_color(
    enum_key: str,
    value: str,
    payload: EnumColorUpdate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    row = await _get_value(db, enum_key, value)
    row.color = payload.color
    await db.commit()
    await db.refresh(row)

    await log_audit(
        db, "enum_color_updated",
        username=actor.username, source_ip=actor.source_ip,
        resource_type="enum", resource_id=enum_key,
        details=f"'{value}' color set to {payload.color}",
    )
    await event_bus.publish(COLORS_UPDATED, {"key": enum_key, "value": value, "color": row.color})
    return row
