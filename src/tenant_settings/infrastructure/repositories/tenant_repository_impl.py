# src/tenant_settings/infrastructure/repositories/tenant_repository_impl.py
from typing import Any, Mapping, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from crm_shared.exceptions import ValidationError
from crm_shared.infrastructure.observability.logger import get_logger
from crm_shared.utils.paths import split_path
from tenant_settings.domain.entities.tenant_record import TenantRecord
from tenant_settings.domain.protocols.tenant_repository import DEFAULT_PROJECTION, TenantRepository
from tenant_settings.infrastructure.models.tenant_model import TenantModel

logger = get_logger(__name__)

_COLUMNS = {
    "id": TenantModel.id,
    "name": TenantModel.name,
    "settings": TenantModel.settings,
    "is_active": TenantModel.is_active,
}
_SETTINGS_PREFIX = "settings."


class SQLAlchemyTenantRepository(TenantRepository):
    """
    SQLAlchemy implementation of the tenant lookup contract.

    Opens a short-lived session per call from the injected factory; the
    settings cache is long-lived and must not pin a session.
    Nested `settings.<path>` filters compile to JSON path extraction
    (`#>>` on PostgreSQL, `JSON_EXTRACT` on SQLite) compared as text.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @staticmethod
    def _condition(field: str, value: Any):
        if field in _COLUMNS and field != "settings":
            return _COLUMNS[field] == value
        if field.startswith(_SETTINGS_PREFIX):
            try:
                path = tuple(split_path(field[len(_SETTINGS_PREFIX):]))
            except ValueError as e:
                raise ValidationError(f"Invalid settings filter {field!r}: {e}") from e
            return TenantModel.settings[path].as_string() == str(value)
        raise ValidationError(
            f"Unsupported tenant filter {field!r}",
            details={"supported": ["id", "name", "is_active", "settings.<path>"]},
        )

    @staticmethod
    def _columns(projection: Sequence[str]) -> list:
        unknown = [p for p in projection if p not in _COLUMNS]
        if unknown:
            raise ValidationError(f"Unsupported projection fields: {unknown}")
        # id and is_active are always selected
        names = ["id", "is_active", *[p for p in projection if p not in ("id", "is_active")]]
        return [_COLUMNS[n].label(n) for n in names]

    async def find_one(
        self,
        filters: Mapping[str, Any],
        projection: Sequence[str] = DEFAULT_PROJECTION,
    ) -> Optional[TenantRecord]:
        """Find the first tenant matching every filter."""
        stmt = (
            select(*self._columns(projection))
            .where(*[self._condition(f, v) for f, v in filters.items()])
            .limit(1)
        )
        try:
            async with self._session_factory() as session:
                row = (await session.execute(stmt)).mappings().first()
        except SQLAlchemyError as e:
            logger.error("Tenant lookup failed", filters=list(filters), error=str(e))
            raise

        if row is None:
            logger.debug("Tenant not found", filters=list(filters))
            return None
        return TenantRecord.from_mapping(dict(row))

    async def add(self, record: TenantRecord) -> TenantRecord:
        """Insert a tenant (seeding and tests); commits its own session."""
        async with self._session_factory() as session:
            async with session.begin():
                session.add(
                    TenantModel(
                        id=record.id,
                        name=record.display_name or record.id,
                        settings=record.settings,
                        is_active=record.is_active,
                    )
                )
        logger.info("Tenant stored", tenant_id=record.id)
        return record
