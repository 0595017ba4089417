"""
설정 관리 모듈

YAML 기본 설정 + 환경별 설정 + 환경변수 오버라이드
로드 시점에 providers / resolver / cache 섹션 검증 및 타입 변환
(환경변수 값은 문자열로 들어오므로 숫자/불리언으로 변환)
"""
import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from stock_screener.core.exceptions import ConfigError, ConfigNotFoundError, ConfigValidationError
from stock_screener.core.interfaces import DataSource

ENV_PREFIX = "SCREENER_"
ENV_SEPARATOR = "__"

CACHE_BACKENDS = ("memory", "database")

# 체인에 넣을 수 있는 출처 (기본 우선순위 순서, MANUAL 제외)
PROVIDER_SOURCES = (DataSource.YAHOO_QUERY, DataSource.FMP, DataSource.SCRAPING)

# 키: (변환 함수 이름, 최솟값)
RESOLVER_SCHEMA = {
    "max_batch_size": ("int", 1),
    "max_workers": ("int", 1),
    "attempt_timeout_seconds": ("timeout", 0),
}
PROVIDER_SCHEMA = {
    "enabled": ("bool", None),
    "timeout_seconds": ("float", 0),
    "retry_count": ("int", 0),
    "cache_ttl_seconds": ("int", 0),
}
RATE_LIMIT_SCHEMA = {
    "min_interval_seconds": ("float", 0),
    "max_calls_per_hour": ("int", 1),
    "max_attempts_per_ticker": ("int", 1),
    "max_wait_seconds": ("float", 0),
}

_TRUE = ("true", "1", "yes", "on")
_FALSE = ("false", "0", "no", "off")


def _coerce(key: str, value: Any, kind: str, minimum: float | None) -> Any:
    """설정 값 타입 변환 + 최솟값 검증"""
    if kind == "bool":
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
        raise ConfigValidationError(f"불리언 값이 아닙니다: {key}", {"key": key, "value": value})

    if kind == "timeout" and (value is None or str(value).strip().lower() in ("", "none", "null")):
        return None

    try:
        number = int(value) if kind == "int" else float(value)
    except (TypeError, ValueError):
        raise ConfigValidationError(f"숫자 값이 아닙니다: {key}", {"key": key, "value": value})

    # timeout은 0 초과, 나머지는 최솟값 이상
    too_small = number <= minimum if kind == "timeout" else minimum is not None and number < minimum
    if too_small:
        raise ConfigValidationError(
            f"설정 값이 너무 작습니다: {key}",
            {"key": key, "value": number, "minimum": minimum},
        )
    return number


def _coerce_section(prefix: str, section: Any, schema: dict[str, tuple[str, float | None]]) -> None:
    if section is None:
        return
    if not isinstance(section, dict):
        raise ConfigValidationError(f"설정 섹션은 매핑이어야 합니다: {prefix}", {"value": section})

    for key, (kind, minimum) in schema.items():
        if key in section:
            section[key] = _coerce(f"{prefix}.{key}", section[key], kind, minimum)


class Config:
    """
    설정 관리자

    사용법:
        config = Config()  # 기본: development 환경
        config = Config(env="production")

        # 설정 값 접근
        ttl = config.get("cache.default_ttl_seconds")
        order = config.provider_order()
        fmp = config.provider_settings("fmp")
    """

    _instance: "Config | None" = None
    _initialized: bool = False

    def __new__(cls, *args, **kwargs) -> "Config":
        """싱글톤 패턴"""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self, env: str | None = None, config_dir: Path | None = None):
        if Config._initialized:
            return

        load_dotenv()

        # 환경 결정: 인자 > 환경변수 > 기본값
        self.env = env or os.getenv("APP_ENV", "development")

        if config_dir:
            self.config_dir = Path(config_dir)
        else:
            # 프로젝트 루트/config 디렉토리
            self.config_dir = Path(__file__).parent.parent.parent / "config"

        self._config: dict[str, Any] = {}
        self._load_config()

        Config._initialized = True

    def _load_config(self) -> None:
        """설정 파일 로드 (기본 + 환경별 + 환경변수) 후 검증"""
        base_config_path = self.config_dir / "settings.yaml"
        if not base_config_path.exists():
            raise ConfigNotFoundError(
                f"기본 설정 파일을 찾을 수 없습니다: {base_config_path}"
            )
        self._config = self._load_yaml(base_config_path)

        env_config_path = self.config_dir / f"settings.{self.env}.yaml"
        if env_config_path.exists():
            self._deep_merge(self._config, self._load_yaml(env_config_path))

        self._apply_env_overrides()
        self._validate()

    def _load_yaml(self, path: Path) -> dict[str, Any]:
        """YAML 파일 로드"""
        try:
            with open(path, "r", encoding="utf-8") as f:
                return yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"YAML 파싱 오류: {path}", {"error": str(e)})

    def _deep_merge(self, base: dict, override: dict) -> None:
        """딕셔너리 깊은 병합 (override가 base를 덮어씀)"""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def _apply_env_overrides(self) -> None:
        """
        환경 변수로 설정 오버라이드

        SCREENER_PROVIDERS__FMP__API_KEY -> providers.fmp.api_key
        SCREENER_PROVIDERS__ORDER=fmp,yahoo-query -> providers.order
        """
        for key, value in os.environ.items():
            if key.startswith(ENV_PREFIX):
                config_key = key[len(ENV_PREFIX):].lower().replace(ENV_SEPARATOR, ".")
                self._set_nested(config_key, value)

    def _set_nested(self, key: str, value: Any) -> None:
        """점(.) 표기법으로 중첩 설정 값 설정"""
        keys = key.split(".")
        current = self._config

        for k in keys[:-1]:
            if not isinstance(current.get(k), dict):
                current[k] = {}
            current = current[k]

        current[keys[-1]] = value

    # ============================================
    # Validation
    # ============================================
    def _validate(self) -> None:
        """
        도메인 섹션 검증 (값은 제자리에서 변환)

        Raises:
            ConfigValidationError: 알 수 없는 제공자, 잘못된 숫자, 지원하지 않는 캐시 백엔드
        """
        self._validate_providers()
        _coerce_section("resolver", self._config.get("resolver"), RESOLVER_SCHEMA)
        self._validate_cache()

        database = self._config.get("database")
        _coerce_section("database", database, {"pool_size": ("int", 1), "echo": ("bool", None)})

        log_file = (self._config.get("logging") or {}).get("file")
        _coerce_section("logging.file", log_file, {"enabled": ("bool", None), "provider_log": ("bool", None)})

    def _validate_providers(self) -> None:
        providers = self._config.get("providers")
        if providers is None:
            return
        if not isinstance(providers, dict):
            raise ConfigValidationError("providers 섹션은 매핑이어야 합니다", {"value": providers})

        known = [source.value for source in PROVIDER_SOURCES]

        if "order" in providers:
            order = providers["order"]
            if isinstance(order, str):
                order = [name.strip() for name in order.split(",") if name.strip()]
            if not isinstance(order, list) or not order:
                raise ConfigValidationError("providers.order가 비어 있습니다", {"value": order})

            order = [str(name).strip().lower() for name in order]
            unknown = [name for name in order if name not in known]
            if unknown:
                raise ConfigValidationError(
                    f"지원하지 않는 제공자: {', '.join(unknown)}",
                    {"order": order, "supported": known},
                )
            if len(set(order)) != len(order):
                raise ConfigValidationError("providers.order에 중복된 제공자가 있습니다", {"order": order})
            providers["order"] = order

        for name in known:
            section = providers.get(name)
            _coerce_section(f"providers.{name}", section, PROVIDER_SCHEMA)
            if isinstance(section, dict):
                _coerce_section(f"providers.{name}.rate_limit", section.get("rate_limit"), RATE_LIMIT_SCHEMA)

    def _validate_cache(self) -> None:
        cache = self._config.get("cache")
        _coerce_section("cache", cache, {"default_ttl_seconds": ("int", 0)})
        if not cache or "backend" not in cache:
            return

        backend = str(cache["backend"]).strip().lower()
        if backend not in CACHE_BACKENDS:
            raise ConfigValidationError(
                f"지원하지 않는 캐시 백엔드: {backend}",
                {"supported": list(CACHE_BACKENDS)},
            )
        cache["backend"] = backend

    # ============================================
    # Access
    # ============================================
    def get(self, key: str, default: Any = None) -> Any:
        """
        설정 값 조회 (점 표기법 지원)

        Args:
            key: 설정 키 (예: "resolver.max_batch_size")
            default: 기본값

        Returns:
            설정 값 또는 기본값
        """
        keys = key.split(".")
        current = self._config

        for k in keys:
            if isinstance(current, dict) and k in current:
                current = current[k]
            else:
                return default

        return current

    def get_section(self, section: str) -> dict[str, Any]:
        """섹션 전체 조회"""
        return self.get(section) or {}

    def provider_order(self) -> list[str]:
        """제공자 우선순위 (설정 없으면 기본 순서)"""
        return list(self.get("providers.order") or [source.value for source in PROVIDER_SOURCES])

    def provider_settings(self, name: str) -> dict[str, Any]:
        """제공자별 설정 (providers.<name>)"""
        return self.get_section(f"providers.{name}")

    @classmethod
    def reset(cls) -> None:
        """싱글톤 인스턴스 리셋 (테스트용)"""
        cls._instance = None
        cls._initialized = False


def get_config() -> Config:
    """Config 인스턴스 반환 (편의 함수)"""
    return Config()
