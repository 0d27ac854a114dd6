from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from dcim.models.audit import AuditLog


async def log_audit(
    db: AsyncSession,
    action: str,
    username: Optional[str] = None,
    resource_type: Optional[str] = None,
    resource_id: Optional[str] = None,
    details: Optional[str] = None,
    source_ip: Optional[str] = None,
    success: bool = True,
):
    audit = AuditLog(
        username=username,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        details=details,
        source_ip=source_ip,
        success=success,
    )
    db.add(audit)
    await db.commit()
