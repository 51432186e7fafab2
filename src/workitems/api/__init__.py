"""HTTP API for tenant-scoped work item operations."""

from src.workitems.api.routes import get_service, router
from src.workitems.api.tenancy import TENANT_HEADER_NAME, get_tenant_id

__all__ = [
    "TENANT_HEADER_NAME",
    "get_service",
    "get_tenant_id",
    "router",
]
