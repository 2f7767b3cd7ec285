from typing import Any, Dict, Optional


# ───────────────────────── Base & Domain Exceptions ─────────────────────────
class DomainError(Exception):
    """Base class for domain-level errors. Services raise these, never transport errors."""
    code: str = "domain_error"
    message: str
    details: Optional[Dict[str, Any]]

    def __init__(
        self,
        message: str = "",
        *,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message or self.__class__.__name__)
        if code is not None:
            self.code = code
        self.message = message or self.__class__.__name__
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(DomainError):
    code = "validation_error"


class IndexerNotConfiguredError(ValidationError):
    code = "indexer_not_configured"


class ConfigurationError(DomainError):
    code = "configuration_error"


class CacheUnavailableError(DomainError):
    """Raised only at connect time; cache operations degrade to sentinels instead."""
    code = "cache_unavailable"
