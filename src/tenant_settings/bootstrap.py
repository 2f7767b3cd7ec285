"""
Wiring for the settings cache: one Redis handle, one session factory and one
background runner per process, shared by every service built here.
"""
from __future__ import annotations

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from crm_shared.config import Settings, get_settings
from crm_shared.infrastructure.background import BackgroundTaskRunner
from crm_shared.infrastructure.cache.redis_client import RedisClient
from tenant_settings.application.services.settings_sync_service import SettingsSyncService
from tenant_settings.indexers import IndexerTable
from tenant_settings.infrastructure.repositories.tenant_repository_impl import SQLAlchemyTenantRepository


def build_settings_sync_service(
    client: RedisClient,
    session_factory: async_sessionmaker[AsyncSession],
    settings: Optional[Settings] = None,
    *,
    background: Optional[BackgroundTaskRunner] = None,
) -> SettingsSyncService:
    settings = settings or get_settings()
    return SettingsSyncService(
        cache=client,
        repository=SQLAlchemyTenantRepository(session_factory),
        indexers=IndexerTable.from_settings(settings),
        background=background
        or BackgroundTaskRunner("settings-sync", max_concurrency=settings.background_max_concurrency),
    )
