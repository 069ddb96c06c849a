"""Result values returned by the service layer.

Services report failures as values instead of raising, so that the API
layer decides how each kind maps to a transport response.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Generic, List, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(str, enum.Enum):
    NOT_FOUND = "NOT_FOUND"
    VALIDATION = "VALIDATION"
    CONFLICT = "CONFLICT"
    SYSTEM = "SYSTEM"


class ErrorCode(str, enum.Enum):
    """Fine-grained failure reasons, each belonging to one ErrorKind."""
    NOT_FOUND = "NOT_FOUND"
    DUPLICATE_CODE = "DUPLICATE_CODE"
    ALREADY_ALLOCATED = "ALREADY_ALLOCATED"
    NOT_DELETED = "NOT_DELETED"
    NOT_ALLOCATED = "NOT_ALLOCATED"
    HAS_ALLOCATED_ENTRIES = "HAS_ALLOCATED_ENTRIES"
    HAS_CHILDREN = "HAS_CHILDREN"
    INVALID_EXTENSION = "INVALID_EXTENSION"
    INVALID_FORMAT = "INVALID_FORMAT"
    INVALID_OCCUPANCY_TYPE = "INVALID_OCCUPANCY_TYPE"
    UNSUPPORTED_STRUCTURE = "UNSUPPORTED_STRUCTURE"
    EXTRACTION_FAILURE = "EXTRACTION_FAILURE"
    CONFIGURATION = "CONFIGURATION"
    STORAGE = "STORAGE"


@dataclass
class ServiceResult(Generic[T]):
    success: bool
    data: Optional[T] = None
    message: str = ""
    error_kind: Optional[ErrorKind] = None
    error_code: Optional[ErrorCode] = None

    @classmethod
    def ok(cls, data: Optional[T] = None, message: str = "") -> "ServiceResult[T]":
        return cls(success=True, data=data, message=message)

    @classmethod
    def fail(
        cls,
        kind: ErrorKind,
        message: str,
        code: Optional[ErrorCode] = None,
    ) -> "ServiceResult[T]":
        return cls(success=False, message=message, error_kind=kind, error_code=code)

    @classmethod
    def not_found(cls, message: str) -> "ServiceResult[T]":
        return cls.fail(ErrorKind.NOT_FOUND, message, ErrorCode.NOT_FOUND)

    @classmethod
    def conflict(cls, message: str, code: ErrorCode = ErrorCode.DUPLICATE_CODE) -> "ServiceResult[T]":
        return cls.fail(ErrorKind.CONFLICT, message, code)

    @classmethod
    def invalid(cls, message: str, code: ErrorCode = ErrorCode.INVALID_FORMAT) -> "ServiceResult[T]":
        return cls.fail(ErrorKind.VALIDATION, message, code)

    @classmethod
    def system_error(cls, message: str) -> "ServiceResult[T]":
        return cls.fail(ErrorKind.SYSTEM, message, ErrorCode.STORAGE)

    def cast(self) -> "ServiceResult[Any]":
        """Re-type a failure so it can be returned from a differently typed operation."""
        return ServiceResult(
            success=self.success,
            data=None,
            message=self.message,
            error_kind=self.error_kind,
            error_code=self.error_code,
        )


@dataclass
class BatchItemOutcome:
    item: Any
    success: bool
    message: str = ""
    error_code: Optional[ErrorCode] = None


@dataclass
class BatchOperationResult:
    total: int = 0
    success_count: int = 0
    failed_count: int = 0
    items: List[BatchItemOutcome] = field(default_factory=list)
    message: str = ""

    def record_success(self, item: Any, message: str = "") -> None:
        self.success_count += 1
        self.items.append(BatchItemOutcome(item=item, success=True, message=message))

    def record_failure(self, item: Any, message: str, code: Optional[ErrorCode] = None) -> None:
        self.failed_count += 1
        self.items.append(BatchItemOutcome(item=item, success=False, message=message, error_code=code))

    @property
    def is_success(self) -> bool:
        return self.failed_count == 0
