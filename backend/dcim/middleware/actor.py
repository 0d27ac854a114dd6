from dataclasses import dataclass
from typing import Optional
from fastapi import Request
from dcim.config import settings


@dataclass
class Actor:
    username: Optional[str]
    source_ip: Optional[str]


async def get_actor(request: Request) -> Actor:
    """Identity of the caller as asserted by the auth proxy, for the activity log."""
    return Actor(
        username=request.headers.get(settings.AUTH_USER_HEADER),
        source_ip=request.client.host if request.client else None,
    )
