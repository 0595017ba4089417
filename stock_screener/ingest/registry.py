"""
제공자 레지스트리

DataSource → 제공자 클래스 (닫힌 목록)
설정의 providers.order 순서대로 활성 제공자 생성
"""
from stock_screener.core.config import get_config
from stock_screener.core.exceptions import ConfigValidationError
from stock_screener.core.interfaces import DataSource
from stock_screener.core.logger import get_logger
from stock_screener.ingest.base import BaseRatioProvider
from stock_screener.ingest.fmp import FmpProvider
from stock_screener.ingest.yahoo_query import YahooQueryProvider
from stock_screener.ingest.yahoo_scraper import YahooScraperProvider

logger = get_logger(__name__)

PROVIDER_CLASSES: dict[DataSource, type[BaseRatioProvider]] = {
    DataSource.YAHOO_QUERY: YahooQueryProvider,
    DataSource.FMP: FmpProvider,
    DataSource.SCRAPING: YahooScraperProvider,
}


def create_provider(source: DataSource | str) -> BaseRatioProvider:
    """단일 제공자 생성"""
    try:
        source = DataSource(source)
        provider_class = PROVIDER_CLASSES[source]
    except (ValueError, KeyError):
        raise ConfigValidationError(f"지원하지 않는 제공자: {source}")
    return provider_class()


def build_providers_from_config() -> list[BaseRatioProvider]:
    """
    설정 기반 제공자 체인 생성

    Returns:
        우선순위 순서의 제공자 목록 (비활성 제외)
    """
    config = get_config()
    order = config.provider_order()

    providers = []
    for name in order:
        if not config.provider_settings(name).get("enabled", True):
            logger.info(f"[{name}] 비활성 제공자 건너뜀")
            continue
        providers.append(create_provider(name))

    if not providers:
        raise ConfigValidationError("활성화된 제공자가 없습니다", {"order": order})

    logger.info(f"제공자 체인: {' → '.join(p.get_source_name() for p in providers)}")
    return providers
