from tenant_settings.domain.protocols.tenant_repository import DEFAULT_PROJECTION, TenantRepository

__all__ = ["DEFAULT_PROJECTION", "TenantRepository"]
