"""
커스텀 예외 클래스 정의

모든 레이어에서 사용하는 표준화된 예외 처리
"""
from typing import Any


class BaseError(Exception):
    """모든 커스텀 예외의 기본 클래스"""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# ============================================
# Configuration Errors
# ============================================
class ConfigError(BaseError):
    """설정 관련 오류"""
    pass


class ConfigNotFoundError(ConfigError):
    """설정 파일을 찾을 수 없음"""
    pass


class ConfigValidationError(ConfigError):
    """설정 값 유효성 검증 실패 (프로필, 임계값 포함)"""
    pass


# ============================================
# Provider Errors (Ingest Layer)
# ============================================
class IngestError(BaseError):
    """데이터 수집 관련 오류"""
    pass


class ProviderError(IngestError):
    """개별 데이터 제공자 호출 실패 (폴백 체인에서 흡수됨)"""

    def __init__(
        self,
        message: str,
        source: str | None = None,
        ticker: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        merged = {"source": source, "ticker": ticker}
        merged.update(details or {})
        super().__init__(message, {k: v for k, v in merged.items() if v is not None})
        self.source = source
        self.ticker = ticker


class ProviderTimeoutError(ProviderError):
    """제공자 응답 시간 초과"""
    pass


class RateLimitError(ProviderError):
    """API Rate Limit 초과"""

    def __init__(
        self,
        message: str,
        retry_after: float | None = None,
        source: str | None = None,
        ticker: str | None = None,
    ):
        super().__init__(message, source, ticker, {"retry_after": retry_after})
        self.retry_after = retry_after


class MalformedResponseError(ProviderError):
    """응답 형식 오류 또는 사용할 수 없는 데이터"""
    pass


class TickerNotFoundError(ProviderError):
    """존재하지 않는 티커"""
    pass


class ProviderNotConfiguredError(ProviderError):
    """API 키 등 필수 설정 누락"""
    pass


# ============================================
# Resolution Errors
# ============================================
class ResolutionError(BaseError):
    """모든 제공자와 캐시가 소진되어 종목 데이터를 얻지 못함"""

    def __init__(
        self,
        ticker: str,
        attempted_sources: list[str],
        last_errors: dict[str, str],
    ):
        super().__init__(
            f"종목 데이터 조회 실패: {ticker}",
            {"attempted_sources": attempted_sources, "last_errors": last_errors},
        )
        self.ticker = ticker
        self.attempted_sources = attempted_sources
        self.last_errors = last_errors


# ============================================
# Validation Errors
# ============================================
class DataValidationError(BaseError):
    """입력 데이터 유효성 검증 실패"""
    pass


class InvalidTickerError(DataValidationError):
    """잘못된 티커 형식"""
    pass


class BatchSizeExceededError(DataValidationError):
    """일괄 조회 한도 초과 (작업 시작 전 거부)"""

    def __init__(self, size: int, limit: int):
        super().__init__(
            f"일괄 조회 한도 초과: {size}개 (최대 {limit}개)",
            {"size": size, "limit": limit},
        )
        self.size = size
        self.limit = limit


# ============================================
# Scoring Errors
# ============================================
class ScoringError(BaseError):
    """점수 계산 실패"""
    pass


# ============================================
# Database / Cache Errors
# ============================================
class DatabaseError(BaseError):
    """데이터베이스 관련 오류"""
    pass


class CacheError(BaseError):
    """캐시 관련 오류"""
    pass
