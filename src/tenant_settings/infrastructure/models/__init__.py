from .tenant_model import TenantModel

__all__ = ["TenantModel"]
