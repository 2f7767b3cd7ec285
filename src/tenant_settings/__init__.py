"""
Tenant settings cache with reverse-lookup indexes over Redis.
"""
from tenant_settings.application.services import SettingsSyncService, SyncReport
from tenant_settings.bootstrap import build_settings_sync_service
from tenant_settings.domain import DEFAULT_PROJECTION, IndexerDescriptor, TenantRecord, TenantRepository
from tenant_settings.indexers import DEFAULT_INDEXERS, IndexerTable, settings_key

__all__ = [
    "SettingsSyncService",
    "SyncReport",
    "build_settings_sync_service",
    "TenantRecord",
    "IndexerDescriptor",
    "TenantRepository",
    "DEFAULT_PROJECTION",
    "DEFAULT_INDEXERS",
    "IndexerTable",
    "settings_key",
]
