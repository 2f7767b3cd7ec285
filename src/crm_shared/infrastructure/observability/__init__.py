"""
Shared Observability Infrastructure
Structured logging
"""
from crm_shared.infrastructure.observability.logger import (
    bound_context,
    configure_logging,
    get_logger,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "bound_context",
]
