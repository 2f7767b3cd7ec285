from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional


@dataclass(frozen=True, slots=True)
class TenantRecord:
    """
    Minimal projection of a tenant as the settings cache needs it.

    Notes:
    - `settings` is the nested settings blob, cached as a single value.
    - The repository owns the record; the cache only mirrors it.
    """
    id: str
    settings: Optional[Dict[str, Any]]
    display_name: Optional[str] = None
    is_active: bool = True

    @property
    def label(self) -> str:
        return self.display_name or self.id

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "TenantRecord":
        tenant_id = data.get("id", data.get("_id"))
        return cls(
            id=str(tenant_id) if tenant_id is not None else "",
            settings=data.get("settings"),
            display_name=data.get("name", data.get("display_name")),
            is_active=bool(data.get("is_active", True)),
        )
