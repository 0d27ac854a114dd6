"""
Process-wide cache of the server form schema.

Rebuilt lazily from the database; dropped whenever property definitions or
enum values change.
"""
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from dcim.models.enum_value import EnumValue
from dcim.models.property import PropertyDefinition
from dcim.schemas.property import PropertyDefinitionData
from dcim.services.event_bus import ENUMS_UPDATED, SCHEMA_UPDATED, EventBus, event_bus
from dcim.services.form_schema import FormSchema, build_form_schema

logger = logging.getLogger(__name__)


@dataclass
class CachedSchema:
    schema: FormSchema
    properties: List[PropertyDefinitionData]


async def load_active_properties(db: AsyncSession) -> List[PropertyDefinitionData]:
    result = await db.execute(
        select(PropertyDefinition)
        .where(PropertyDefinition.active == True)
        .order_by(PropertyDefinition.sort_order, PropertyDefinition.name)
    )
    return [PropertyDefinitionData.model_validate(p) for p in result.scalars().all()]


async def load_enum_map(db: AsyncSession) -> Dict[str, List[str]]:
    result = await db.execute(
        select(EnumValue).order_by(EnumValue.enum_key, EnumValue.sort_order, EnumValue.id)
    )
    enums: Dict[str, List[str]] = {}
    for row in result.scalars().all():
        enums.setdefault(row.enum_key, []).append(row.value)
    return enums


class FormSchemaCache:
    def __init__(self, bus: EventBus):
        self._cached: Optional[CachedSchema] = None
        self._generation = 0
        self.builds = 0
        bus.subscribe(SCHEMA_UPDATED, self.invalidate)
        bus.subscribe(ENUMS_UPDATED, self.invalidate)

    def invalidate(self, topic: Optional[str] = None, payload=None) -> None:
        self._generation += 1
        self._cached = None
        if topic:
            logger.debug("Form schema invalidated by %s", topic)

    async def get(self, db: AsyncSession) -> CachedSchema:
        cached = self._cached
        if cached is not None:
            return cached

        generation = self._generation
        properties = await load_active_properties(db)
        enums = await load_enum_map(db)
        cached = CachedSchema(schema=build_form_schema(properties, enums), properties=properties)
        self.builds += 1

        # An invalidation during the build means what we loaded may be stale
        if generation == self._generation:
            self._cached = cached
        return cached


schema_cache = FormSchemaCache(event_bus)
