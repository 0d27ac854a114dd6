from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Any, Dict, List
from dcim.database import get_db
from dcim.middleware.actor import Actor, get_actor
from dcim.models.property import PropertyDefinition
from dcim.schemas.form import FormSchemaResponse, FormValidationResponse
from dcim.schemas.property import PropertyCreate, PropertyUpdate, PropertyResponse
from dcim.services.audit import log_audit
from dcim.services.event_bus import SCHEMA_UPDATED, event_bus
from dcim.services.form_schema import validate_form_data
from dcim.services.schema_cache import schema_cache

router = APIRouter(prefix="/api/properties", tags=["Properties"])


def _options_column(options) -> Any:
    return options.model_dump(exclude_none=True) if options is not None else None


@router.get("/", response_model=List[PropertyResponse])
async def list_properties(active_only: bool = True, db: AsyncSession = Depends(get_db)):
    query = select(PropertyDefinition).order_by(PropertyDefinition.sort_order, PropertyDefinition.name)
    if active_only:
        query = query.where(PropertyDefinition.active == True)
    result = await db.execute(query)
    return result.scalars().all()


@router.get("/form-schema", response_model=FormSchemaResponse)
async def get_form_schema(db: AsyncSession = Depends(get_db)):
    """Field descriptors, blank-form defaults and JSON schema for the server form."""
    cached = await schema_cache.get(db)
    schema = cached.schema
    return FormSchemaResponse(
        fields=schema.fields,
        default_values=schema.default_values,
        json_schema=schema.validation_schema.model_json_schema(),
    )


@router.post("/validate", response_model=FormValidationResponse)
async def validate_form(payload: Dict[str, Any] = Body(...), db: AsyncSession = Depends(get_db)):
    cached = await schema_cache.get(db)
    result = validate_form_data(cached.schema, payload)
    return FormValidationResponse(success=result.success, data=result.data, errors=result.errors)


@router.post("/", response_model=PropertyResponse, status_code=201)
async def create_property(
    payload: PropertyCreate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    existing = await db.execute(select(PropertyDefinition).where(PropertyDefinition.key == payload.key))
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=400, detail=f"Property '{payload.key}' already exists")

    prop = PropertyDefinition(
        key=payload.key,
        name=payload.name,
        display_name=payload.display_name,
        property_type=payload.property_type.value,
        required=payload.required,
        default_value=payload.default_value,
        options=_options_column(payload.options),
        category=payload.category,
        description=payload.description,
        sort_order=payload.sort_order,
        active=True,
    )
    db.add(prop)
    await db.commit()
    await db.refresh(prop)

    await log_audit(
        db, "property_created",
        username=actor.username, source_ip=actor.source_ip,
        resource_type="property", resource_id=prop.key,
        details=f"Created {prop.property_type} property: {prop.display_name}",
    )
    await event_bus.publish(SCHEMA_UPDATED, {"key": prop.key, "action": "created"})
    return prop


@router.get("/{property_id}", response_model=PropertyResponse)
async def get_property(property_id: int, db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(PropertyDefinition).where(PropertyDefinition.id == property_id))
    prop = result.scalar_one_or_none()
    if not prop:
        raise HTTPException(status_code=404, detail="Property not found")
    return prop


@router.patch("/{property_id}", response_model=PropertyResponse)
async def update_property(
    property_id: int,
    payload: PropertyUpdate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(select(PropertyDefinition).where(PropertyDefinition.id == property_id))
    prop = result.scalar_one_or_none()
    if not prop:
        raise HTTPException(status_code=404, detail="Property not found")

    update_data = payload.model_dump(exclude_unset=True)
    # Columns that cannot be cleared
    for key in ("name", "display_name", "property_type", "required", "active", "sort_order"):
        if key in update_data and update_data[key] is None:
            del update_data[key]
    if "options" in update_data:
        update_data["options"] = _options_column(payload.options)
    if update_data.get("property_type") is not None:
        update_data["property_type"] = payload.property_type.value
    for key, value in update_data.items():
        setattr(prop, key, value)
    await db.commit()
    await db.refresh(prop)

    await log_audit(
        db, "property_updated",
        username=actor.username, source_ip=actor.source_ip,
        resource_type="property", resource_id=prop.key,
        details=f"Updated fields: {sorted(update_data.keys())}",
    )
    await event_bus.publish(SCHEMA_UPDATED, {"key": prop.key, "action": "updated"})
    return prop


@router.delete("/{property_id}")
async def delete_property(
    property_id: int,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(select(PropertyDefinition).where(PropertyDefinition.id == property_id))
    prop = result.scalar_one_or_none()
    if not prop:
        raise HTTPException(status_code=404, detail="Property not found")

    # Stored server values are kept; the definition just stops being active
    prop.active = False
    await db.commit()

    await log_audit(
        db, "property_deleted",
        username=actor.username, source_ip=actor.source_ip,
        resource_type="property", resource_id=prop.key,
        details=f"Deactivated: {prop.display_name}",
    )
    await event_bus.publish(SCHEMA_UPDATED, {"key": prop.key, "action": "deleted"})
    return {"message": "Property deleted"}
