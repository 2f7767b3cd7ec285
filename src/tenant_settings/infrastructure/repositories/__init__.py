from .tenant_repository_impl import SQLAlchemyTenantRepository

__all__ = ["SQLAlchemyTenantRepository"]
