from tenant_settings.application.services.settings_sync_service import SettingsSyncService, SyncReport

__all__ = ["SettingsSyncService", "SyncReport"]
