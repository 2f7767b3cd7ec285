from tenant_settings.domain.entities import TenantRecord
from tenant_settings.domain.protocols import DEFAULT_PROJECTION, TenantRepository
from tenant_settings.domain.value_objects import IndexerDescriptor

__all__ = ["TenantRecord", "IndexerDescriptor", "TenantRepository", "DEFAULT_PROJECTION"]
