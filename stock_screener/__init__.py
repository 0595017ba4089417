"""
Stock Screener

재무비율 기반 저평가 점수 산출
- core: 설정, 로깅, 예외, 캐시
- scoring: 프로필별 점수화
- ingest: 데이터 제공자
- resolver: 캐시 + 폴백 체인
- orchestrator: 서비스 진입점
"""
__version__ = "0.1.0"
