"""
Tenant Repository Protocol
Read-side contract the settings cache falls back to on a miss.
"""
from abc import abstractmethod
from typing import Any, Mapping, Optional, Protocol, Sequence

from tenant_settings.domain.entities.tenant_record import TenantRecord

DEFAULT_PROJECTION: tuple[str, ...] = ("id", "name", "settings")


class TenantRepository(Protocol):
    """Repository protocol for tenant lookups."""

    @abstractmethod
    async def find_one(
        self,
        filters: Mapping[str, Any],
        projection: Sequence[str] = DEFAULT_PROJECTION,
    ) -> Optional[TenantRecord]:
        """
        Find the first tenant matching every filter.

        Filters are keyed by field name ("id", "name", "is_active") or by a
        dotted settings path ("settings.meta_integrations.whatsapp.phoneNumberId").
        """
        ...
