"""Multi-tenant work item tracking service.

This package provides:
- Work item status state machine and domain entities
- Work item service with validation, actor normalization and pagination
- Atomic bulk status transitions with aggregate outcome counts
- PostgreSQL persistence through asyncpg
- Bulk transition events and Prometheus metrics
- FastAPI routes keyed by the X-Tenant-Id header
"""
