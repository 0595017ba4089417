"""
로깅 서비스

loguru 기반 로깅
- stderr + app.log + error.log
- providers.log: 제공자 조회 기록 (source가 바인딩된 레코드만)
"""
import sys
from pathlib import Path
from typing import Any

from loguru import logger

from stock_screener.core.exceptions import ConfigError

DEFAULT_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)

PROVIDER_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[source]: <12} | {message}"


def _is_provider_record(record: dict) -> bool:
    return "source" in record["extra"]


class LoggerService:
    """
    로깅 서비스

    사용법:
        from stock_screener.core.logger import get_logger

        logger = get_logger(__name__)
        logger.info("조회 시작")

        # 제공자 로거 (providers.log에도 기록)
        logger = get_logger("FmpProvider", source="fmp")
    """

    _configured: bool = False

    @classmethod
    def configure(
        cls,
        level: str = "INFO",
        log_dir: str = "./logs",
        log_format: str | None = None,
        file_enabled: bool = True,
        provider_log: bool = True,
        rotation: str = "10 MB",
        retention: str = "7 days",
    ) -> None:
        """
        로거 설정

        Args:
            level: 로그 레벨 (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_dir: 로그 파일 디렉토리
            log_format: 로그 포맷 (None이면 기본값 사용)
            file_enabled: 파일 로깅 활성화 여부
            provider_log: 제공자 조회 로그(providers.log) 분리 여부
            rotation: 로그 파일 로테이션 크기
            retention: 로그 파일 보관 기간
        """
        if cls._configured:
            return

        logger.remove()
        log_format = log_format or DEFAULT_FORMAT

        # extra[name]이 없는 레코드 대비
        logger.configure(extra={"name": "stock_screener"})

        logger.add(sys.stderr, format=log_format, level=level, colorize=True)

        if file_enabled:
            log_path = Path(log_dir)
            log_path.mkdir(parents=True, exist_ok=True)

            # 조회 스레드에서 동시에 기록하므로 enqueue
            file_options = {
                "rotation": rotation,
                "retention": retention,
                "compression": "zip",
                "encoding": "utf-8",
                "enqueue": True,
            }

            logger.add(log_path / "app.log", format=log_format, level=level, **file_options)
            logger.add(log_path / "error.log", format=log_format, level="ERROR", **file_options)

            if provider_log:
                logger.add(
                    log_path / "providers.log",
                    format=PROVIDER_FORMAT,
                    level=level,
                    filter=_is_provider_record,
                    **file_options,
                )

        cls._configured = True

    @classmethod
    def reset(cls) -> None:
        """설정 리셋 (테스트용)"""
        logger.remove()
        cls._configured = False


def get_logger(name: str, **context: Any) -> Any:
    """
    모듈별 로거 반환

    Args:
        name: 모듈 이름 (보통 __name__ 또는 클래스명)
        **context: 추가 바인딩 (source="fmp"면 providers.log 대상)

    Returns:
        loguru logger 인스턴스
    """
    return logger.bind(name=name, **context)


def setup_logger_from_config() -> None:
    """설정 파일 기반 로거 초기화 (설정 오류 시 기본값)"""
    from stock_screener.core.config import get_config

    try:
        logging_config = get_config().get_section("logging")
    except ConfigError as e:
        LoggerService.configure()
        logger.warning(f"로깅 설정 로드 실패, 기본값 사용: {e}")
        return

    file_config = logging_config.get("file") or {}
    LoggerService.configure(
        level=logging_config.get("level", "INFO"),
        log_dir=logging_config.get("log_dir", "./logs"),
        log_format=logging_config.get("format"),
        file_enabled=file_config.get("enabled", True),
        provider_log=file_config.get("provider_log", True),
        rotation=file_config.get("rotation", "10 MB"),
        retention=file_config.get("retention", "7 days"),
    )
