"""
Request context supplied by the upstream auth gateway.

The gateway authenticates the caller and stamps the verified tenant and actor
on the request as ``X-Tenant-ID`` / ``X-Actor-ID`` headers. Arbor trusts those
values and scopes every query and mutation to the tenant; it never checks
credentials itself.
"""

import uuid
from dataclasses import dataclass

from fastapi import Header, HTTPException, status

from arbor.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RequestContext:
    """Verified caller identity for one request."""

    tenant_id: uuid.UUID
    actor_id: str | None = None


async def get_request_context(
    x_tenant_id: str | None = Header(default=None),
    x_actor_id: str | None = Header(default=None),
) -> RequestContext:
    """
    Build the RequestContext from gateway headers.

    Raises:
        HTTPException: 401 if the tenant header is missing or not a UUID.
    """
    if not x_tenant_id:
        logger.warning("Request without tenant context")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing tenant context",
        )

    try:
        tenant_id = uuid.UUID(x_tenant_id)
    except ValueError:
        logger.warning(f"Malformed tenant header: {x_tenant_id!r}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid tenant context",
        )

    return RequestContext(tenant_id=tenant_id, actor_id=x_actor_id)
