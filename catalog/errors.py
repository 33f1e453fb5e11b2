"""
Catalog exception classes

구조화된 에러 처리를 위한 예외 클래스 정의.
정책 거부(policy rejection)와 레코드 검증 실패는 예외가 아니라 결과 값으로 보고됩니다.
"""
from typing import Optional, Dict, Any
from enum import Enum


class ErrorSeverity(Enum):
    """에러 심각도 레벨"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class CatalogError(Exception):
    """
    Base exception for all catalog errors

    Attributes:
        message: 에러 메시지
        error_code: 에러 코드
        severity: 에러 심각도
        context: 추가 컨텍스트 정보
        recoverable: 복구 가능 여부
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        context: Optional[Dict[str, Any]] = None,
        recoverable: bool = False
    ):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.severity = severity
        self.context = context or {}
        self.recoverable = recoverable
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """에러 정보를 딕셔너리로 변환"""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "severity": self.severity.value,
            "context": self.context,
            "recoverable": self.recoverable
        }


class ProductNotFoundError(CatalogError):
    """
    Locator resolved to no product. Surfaced to the caller, never retried.
    """

    def __init__(self, locator: str, **kwargs):
        context = {"locator": locator}
        context.update(kwargs)
        super().__init__(
            message=f"Product not found: {locator}",
            error_code="PRODUCT_NOT_FOUND",
            severity=ErrorSeverity.LOW,
            context=context,
            recoverable=False
        )
        self.locator = locator


class InvalidValueError(CatalogError):
    """
    Input validation failures for a single-item operation

    Attributes:
        field: 실패한 필드 이름
        actual_value: 실제 값
        allowed: 허용 값 목록
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        actual_value: Optional[Any] = None,
        allowed: Optional[list] = None,
        **kwargs
    ):
        context = {
            "field": field,
            "actual_value": str(actual_value) if actual_value is not None else None,
            "allowed": allowed or []
        }
        context.update(kwargs)
        super().__init__(
            message=message,
            error_code="INVALID_VALUE",
            severity=ErrorSeverity.LOW,
            context=context,
            recoverable=False
        )
        self.field = field
        self.actual_value = actual_value
        self.allowed = allowed


class StorageError(CatalogError):
    """
    Database operation failures

    Attributes:
        table_name: 영향받은 테이블 이름
        operation: 수행하려던 작업 (insert, update, delete, select)
    """

    def __init__(
        self,
        message: str,
        table_name: Optional[str] = None,
        operation: Optional[str] = None,
        severity: ErrorSeverity = ErrorSeverity.HIGH,
        recoverable: bool = False,
        **kwargs
    ):
        context = {
            "table_name": table_name,
            "operation": operation
        }
        context.update(kwargs)
        super().__init__(
            message=message,
            error_code="STORAGE_ERROR",
            severity=severity,
            context=context,
            recoverable=recoverable
        )
        self.table_name = table_name
        self.operation = operation


class ImportConfigError(CatalogError):
    """
    Fatal I/O or configuration error for an import run (missing feed, bad JSON, no DB).
    """

    def __init__(self, message: str, path: Optional[str] = None, **kwargs):
        context = {"path": path}
        context.update(kwargs)
        super().__init__(
            message=message,
            error_code="IMPORT_CONFIG_ERROR",
            severity=ErrorSeverity.CRITICAL,
            context=context,
            recoverable=False
        )
        self.path = path


class EnrichmentError(CatalogError):
    """
    External enrichment / image-search call failures

    Attributes:
        provider: 제공자 (gemini, google)
        status_code: HTTP 상태 코드
    """

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
        recoverable: bool = True,
        **kwargs
    ):
        context = {
            "provider": provider,
            "status_code": status_code
        }
        context.update(kwargs)
        super().__init__(
            message=message,
            error_code="ENRICHMENT_ERROR",
            severity=ErrorSeverity.MEDIUM,
            context=context,
            recoverable=recoverable
        )
        self.provider = provider
        self.status_code = status_code
