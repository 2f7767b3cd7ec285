from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from crm_shared.domain.result import Failure, Result, Success, partition
from crm_shared.exceptions import IndexerNotConfiguredError, ValidationError
from crm_shared.infrastructure.background import BackgroundTaskRunner
from crm_shared.infrastructure.cache.cache_protocol import ICacheProvider
from crm_shared.infrastructure.observability.logger import get_logger
from tenant_settings.domain.entities.tenant_record import TenantRecord
from tenant_settings.domain.protocols.tenant_repository import DEFAULT_PROJECTION, TenantRepository
from tenant_settings.domain.value_objects.indexer_descriptor import IndexerDescriptor
from tenant_settings.indexers import IndexerTable, settings_key

logger = get_logger(__name__)


@dataclass(frozen=True)
class SyncReport:
    """
    Outcome of one full synchronization.

    `indexes` maps platform -> Success(written key, or None when the channel is
    not configured for the tenant) or Failure(error message).
    """
    tenant_id: str
    primary_written: bool
    indexes: Dict[str, Result] = field(default_factory=dict)

    @property
    def indexed_keys(self) -> list[str]:
        written, _ = partition(self.indexes)
        return [key for key in written.values() if key]

    @property
    def failures(self) -> Dict[str, Any]:
        return partition(self.indexes)[1]


class SettingsSyncService:
    """
    Tenant settings cache with reverse-lookup indexes.

    Cache keys:
      - settings:{tenant_id}  -> full settings blob (primary entry)
      - {prefix}:{token}      -> tenant id (one secondary entry per indexer)

    Redis is best-effort: the cache provider never raises, so readers only ever
    see a slower repository fallback. Only integrity errors on the write path
    (a record without id or settings) propagate.
    """

    def __init__(
        self,
        cache: ICacheProvider,
        repository: TenantRepository,
        indexers: IndexerTable,
        background: BackgroundTaskRunner,
    ) -> None:
        self._cache = cache
        self._repo = repository
        self._indexers = indexers
        self._background = background

    # ---------- helpers ----------

    @staticmethod
    def _validate(record: Optional[TenantRecord]) -> TenantRecord:
        if record is None or not record.id or not isinstance(record.settings, Mapping):
            logger.error(
                "Invalid tenant record for settings cache",
                tenant_id=getattr(record, "id", None),
                has_settings=isinstance(getattr(record, "settings", None), Mapping),
            )
            raise ValidationError(
                "Tenant record must have an id and a settings object",
                details={"tenant_id": getattr(record, "id", None)},
            )
        return record

    async def _index_one(self, record: TenantRecord, descriptor: IndexerDescriptor) -> Result:
        """Write one secondary entry; every failure is captured, never raised."""
        try:
            token = descriptor.extract_token(record.settings)
            if token is None:
                logger.debug(
                    "Channel not configured for tenant; no index entry",
                    tenant_id=record.id,
                    platform=descriptor.platform_name,
                )
                return Success(None)

            key = descriptor.cache_key(token)
            written = await self._cache.set(key, record.id)
            if not written:
                logger.warning(
                    "Index entry not written",
                    tenant_id=record.id,
                    platform=descriptor.platform_name,
                    key=key,
                )
                return Failure(f"cache write failed for {key}")

            logger.debug("Index entry written", tenant_id=record.id, platform=descriptor.platform_name, key=key)
            return Success(key)
        except Exception as e:
            logger.error(
                "Index synchronization failed",
                tenant_id=record.id,
                platform=descriptor.platform_name,
                error=str(e),
            )
            return Failure(str(e))

    # ---------- writes ----------

    async def save_full(self, record: TenantRecord) -> SyncReport:
        """
        Mirror a tenant into the cache: primary entry, then every indexer.

        Raises:
            ValidationError: record has no id or no settings
        """
        record = self._validate(record)

        primary = await self._cache.set(settings_key(record.id), record.settings)
        if not primary:
            logger.warning("Primary settings entry not written", tenant_id=record.id)
        else:
            logger.debug("Primary settings entry written", tenant_id=record.id, tenant=record.label)

        indexes: Dict[str, Result] = {}
        for descriptor in self._indexers:
            indexes[descriptor.platform_name] = await self._index_one(record, descriptor)

        report = SyncReport(tenant_id=record.id, primary_written=bool(primary), indexes=indexes)
        logger.info(
            "Tenant settings synchronized",
            tenant_id=record.id,
            primary_written=report.primary_written,
            indexed=len(report.indexed_keys),
            failed=len(report.failures),
        )
        return report

    async def update_channel(self, record: TenantRecord, platform_name: str) -> Result:
        """
        Refresh the secondary entry of a single channel.

        Raises:
            IndexerNotConfiguredError: no indexer for `platform_name`
            ValidationError: record has no id or no settings
        """
        descriptor = self._indexers.get(platform_name)
        if descriptor is None:
            raise IndexerNotConfiguredError(
                f"No indexer configured for platform {platform_name!r}",
                details={"platform": platform_name, "configured": self._indexers.platforms},
            )
        record = self._validate(record)
        return await self._index_one(record, descriptor)

    # ---------- reads ----------

    async def read_settings(self, tenant_id: str) -> Optional[Dict[str, Any]]:
        """
        Cache-aside read of a tenant's settings.

        Returns:
            The settings blob, or None when the tenant (or its settings) does not exist
        """
        if not tenant_id:
            raise ValidationError("tenant_id is required")

        cached = await self._cache.get(settings_key(tenant_id))
        if isinstance(cached, Mapping):
            logger.debug("Cache HIT for tenant settings", tenant_id=tenant_id)
            return dict(cached)
        if cached is not None:
            logger.warning("Ignoring malformed cached settings", tenant_id=tenant_id)

        logger.debug("Cache MISS for tenant settings; reading repository", tenant_id=tenant_id)
        record = await self._repo.find_one({"id": tenant_id, "is_active": True}, DEFAULT_PROJECTION)
        if record is None or record.settings is None:
            logger.warning("Tenant or its settings not found", tenant_id=tenant_id)
            return None

        await self.save_full(record)
        logger.info("Cache repopulated for tenant", tenant_id=tenant_id)
        return record.settings

    async def resolve_tenant_by_token(self, platform_name: str, token: Any) -> Optional[str]:
        """
        Reverse lookup: external channel token -> tenant id.

        A repository hit schedules a background refresh of that channel's index
        entry; the caller does not wait for it.
        """
        descriptor = self._indexers.get(platform_name)
        if descriptor is None:
            logger.warning("Lookup for unconfigured platform", platform=platform_name)
            return None
        if token is None or token == "":
            return None
        token = str(token)

        cached = await self._cache.get(descriptor.cache_key(token))
        if cached is not None:
            logger.debug("Cache HIT for index entry", platform=platform_name)
            return str(cached)

        record = await self._repo.find_one(
            {f"settings.{descriptor.field_path}": token, "is_active": True},
            DEFAULT_PROJECTION,
        )
        if record is None:
            logger.info("No tenant owns token", platform=platform_name)
            return None

        self._background.submit(
            self._refresh_channel(record, platform_name),
            name=f"refresh-index:{platform_name}:{record.id}",
        )
        return record.id

    async def _refresh_channel(self, record: TenantRecord, platform_name: str) -> None:
        result = await self.update_channel(record, platform_name)
        if result.is_failure():
            logger.warning(
                "Background index refresh failed",
                tenant_id=record.id,
                platform=platform_name,
                error=result.error,
            )
