# src/tenant_settings/infrastructure/models/tenant_model.py

from typing import Any, Optional
from uuid import uuid4

from sqlalchemy import JSON, Boolean, Index, String, true
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from crm_shared.infrastructure.database import Base


class TenantModel(Base):
    """SQLAlchemy model for tenants table."""

    __tablename__ = "tenants"

    id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    name: Mapped[str] = mapped_column(String, unique=True, nullable=False)

    # Nested settings blob; JSONB on PostgreSQL so settings paths can be indexed
    settings: Mapped[Optional[dict[str, Any]]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=True,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=true(),
    )

    __table_args__ = (
        Index("idx_tenants_active", "is_active"),
    )

    def __repr__(self) -> str:
        return f"<TenantModel(id={self.id}, name='{self.name}', is_active={self.is_active})>"
