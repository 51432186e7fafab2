"""Tenant resolution for tenant-scoped routes.

The tenant id is supplied out-of-band in the X-Tenant-Id header and must
parse as a UUID before any work item operation runs.
"""

from typing import Optional
from uuid import UUID

from fastapi import Header, HTTPException, status


TENANT_HEADER_NAME = "X-Tenant-Id"


def get_tenant_id(
    x_tenant_id: Optional[str] = Header(default=None, alias=TENANT_HEADER_NAME),
) -> UUID:
    """Resolve the tenant id from the request header.

    Raises:
        HTTPException: 400 if the header is missing or not a valid UUID.
    """
    if x_tenant_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "title": "Invalid tenant header",
                "detail": f"{TENANT_HEADER_NAME} header is required for tenant-scoped endpoints.",
            },
        )

    try:
        return UUID(x_tenant_id.strip())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "title": "Invalid tenant header",
                "detail": f"{TENANT_HEADER_NAME} must be a valid GUID value.",
            },
        ) from None
