from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession
from dcim.database import get_db
from dcim.models.audit import AuditLog
from dcim.schemas.audit import AuditLogResponse

router = APIRouter(prefix="/api/activity", tags=["Activity"])


@router.get("/", response_model=List[AuditLogResponse])
async def list_activity(
    limit: int = Query(200, le=1000),
    offset: int = 0,
    resource_type: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
):
    q = select(AuditLog).order_by(desc(AuditLog.timestamp), desc(AuditLog.id))
    if resource_type:
        q = q.where(AuditLog.resource_type == resource_type)
    q = q.offset(offset).limit(limit)
    result = await db.execute(q)
    return result.scalars().all()
