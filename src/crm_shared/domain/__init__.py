"""
Shared Domain Layer
"""
from crm_shared.domain.result import Failure, Result, Success, partition

__all__ = [
    "Result",
    "Success",
    "Failure",
    "partition",
]
