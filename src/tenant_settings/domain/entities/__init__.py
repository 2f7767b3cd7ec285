from tenant_settings.domain.entities.tenant_record import TenantRecord

__all__ = ["TenantRecord"]
