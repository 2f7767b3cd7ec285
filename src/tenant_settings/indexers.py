"""
Indexer table: which settings tokens get a reverse lookup entry.
"""
from __future__ import annotations

from typing import Any, Iterable, Iterator, Mapping, Optional

from crm_shared.config import Settings
from crm_shared.exceptions import ConfigurationError
from tenant_settings.domain.value_objects.indexer_descriptor import IndexerDescriptor

SETTINGS_KEY_PREFIX = "settings"

DEFAULT_INDEXERS: tuple[IndexerDescriptor, ...] = (
    IndexerDescriptor(
        platform_name="whatsapp",
        token_path=("meta_integrations", "whatsapp", "phoneNumberId"),
        cache_key_prefix="wapPhoneNumberId",
    ),
    IndexerDescriptor(
        platform_name="messenger",
        token_path=("meta_integrations", "messenger", "pageId"),
        cache_key_prefix="msnPageId",
    ),
    IndexerDescriptor(
        platform_name="instagram",
        token_path=("meta_integrations", "instagram", "instagramBusinessAccountId"),
        cache_key_prefix="igmBusinessAccountId",
    ),
)


def settings_key(tenant_id: str) -> str:
    return f"{SETTINGS_KEY_PREFIX}:{tenant_id}"


class IndexerTable:
    """Static, platform-keyed set of indexer descriptors."""

    def __init__(self, descriptors: Iterable[IndexerDescriptor]) -> None:
        self._by_platform: dict[str, IndexerDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.platform_name in self._by_platform:
                raise ConfigurationError(
                    f"Duplicate indexer for platform {descriptor.platform_name!r}",
                    details={"platform": descriptor.platform_name},
                )
            self._by_platform[descriptor.platform_name] = descriptor

    @classmethod
    def from_config(cls, rows: Iterable[Mapping[str, Any]]) -> "IndexerTable":
        try:
            return cls(IndexerDescriptor.from_config(row) for row in rows)
        except ValueError as e:
            raise ConfigurationError(f"Invalid indexer configuration: {e}") from e

    @classmethod
    def from_settings(cls, settings: Settings) -> "IndexerTable":
        if settings.tenant_indexers:
            return cls.from_config(settings.tenant_indexers)
        return cls(DEFAULT_INDEXERS)

    def get(self, platform_name: str) -> Optional[IndexerDescriptor]:
        return self._by_platform.get(platform_name)

    @property
    def platforms(self) -> list[str]:
        return list(self._by_platform)

    def __iter__(self) -> Iterator[IndexerDescriptor]:
        return iter(self._by_platform.values())

    def __len__(self) -> int:
        return len(self._by_platform)
