from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Union

from crm_shared.utils.paths import get_path, join_path, split_path


@dataclass(frozen=True)
class IndexerDescriptor:
    """
    One externally indexable integration channel.

    A tenant whose settings hold a token at `token_path` gets a reverse entry
    `{cache_key_prefix}:{token}` -> tenant id.
    """
    platform_name: str
    token_path: tuple[str, ...]
    cache_key_prefix: str

    def __post_init__(self) -> None:
        if not self.platform_name or not self.platform_name.strip():
            raise ValueError("platform_name must be non-empty")
        if not self.cache_key_prefix or not self.cache_key_prefix.strip():
            raise ValueError("cache_key_prefix must be non-empty")
        path = tuple(self.token_path)
        if not path or any(not isinstance(p, str) or p == "" for p in path):
            raise ValueError("token_path must be a non-empty sequence of keys")
        object.__setattr__(self, "token_path", path)

    @classmethod
    def from_config(cls, row: Mapping[str, Any]) -> "IndexerDescriptor":
        """Build from a config row: {"platform", "path" (dotted or list), "prefix"}."""
        raw_path: Union[str, Sequence[str]] = row.get("path") or ()
        path = split_path(raw_path) if isinstance(raw_path, str) else tuple(raw_path)
        return cls(
            platform_name=str(row.get("platform") or ""),
            token_path=path,
            cache_key_prefix=str(row.get("prefix") or ""),
        )

    @property
    def field_path(self) -> str:
        """Dotted path, as used by repository filters."""
        return join_path(self.token_path)

    def cache_key(self, token: str) -> str:
        return f"{self.cache_key_prefix}:{token}"

    def extract_token(self, settings: Optional[Mapping[str, Any]]) -> Optional[str]:
        """
        Token configured for this channel, or None when the channel is not set up.

        Raises:
            ValueError: the path resolves to a structured value instead of a token
        """
        value = get_path(settings, self.token_path)
        if value is None or value == "":
            return None
        if isinstance(value, (Mapping, list, tuple, set)):
            raise ValueError(
                f"Token at {self.field_path} must be a scalar, got {type(value).__name__}"
            )
        return str(value)
