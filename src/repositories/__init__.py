"""Repository layer package."""

from src.repositories.activity_repo import ActivityRepo
from src.repositories.tenant_repo import TenantRepo
from src.repositories.usage_repo import UsageRepo

__all__ = [
    "ActivityRepo",
    "TenantRepo",
    "UsageRepo",
]
