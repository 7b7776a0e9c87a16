"""Domain-specific exceptions"""

from typing import Any, Iterable, Optional, Tuple


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ValidationError(DomainException):
    """Input is invalid and must be corrected by the caller before submission"""

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        super().__init__(message)
        self.message = message
        self.field = field
        self.value = value

    def to_dict(self) -> dict:
        detail = {"error": "validation_error", "message": self.message}
        if self.field is not None:
            detail["field"] = self.field
            detail["value"] = self.value
        return detail


class AllocationError(DomainException):
    """Selected targets no longer match the candidate set; refresh and reselect"""

    def __init__(self, message: str, missing_ids: Iterable[str] = ()):
        super().__init__(message)
        self.message = message
        self.missing_ids: Tuple[str, ...] = tuple(missing_ids)

    def to_dict(self) -> dict:
        return {
            "error": "allocation_error",
            "message": self.message,
            "missing_ids": list(self.missing_ids),
        }
