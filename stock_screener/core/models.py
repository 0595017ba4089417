"""
데이터베이스 모델 정의

SQLAlchemy ORM 모델
"""
from sqlalchemy import Column, String, Integer, DateTime, JSON

from stock_screener.core.database import Base


# ============================================
# 종목 캐시 모델
# ============================================
class StockCacheModel(Base):
    """티커별 비율 데이터 캐시 테이블"""
    __tablename__ = "stock_cache"

    ticker = Column(String(20), primary_key=True)
    data = Column(JSON, nullable=False)  # StockData.to_dict()
    source = Column(String(20), nullable=False)  # DataSource.value

    # UTC 기준 (naive 저장)
    expires_at = Column(DateTime, nullable=False, index=True)
    updated_at = Column(DateTime, nullable=False)

    # 텔레메트리
    fetch_duration_ms = Column(Integer, nullable=True)
    error_count = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<StockCache {self.ticker} ({self.source}) errors={self.error_count}>"
