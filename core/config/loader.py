"""
설정 로더

settings.yaml 로드 및 DB/로깅 설정 생성
파일이 없으면 기본값 사용
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from core.constants import PROJECT_ROOT, Defaults, Paths


@dataclass(frozen=True)
class DatabaseConfig:
    """DB 연결 설정"""

    path: Path = Paths.DEFAULT_DB
    busy_timeout_ms: int = Defaults.BUSY_TIMEOUT_MS


@dataclass(frozen=True)
class LoggingConfig:
    """로깅 설정"""

    level: str = Defaults.LOG_LEVEL

    @property
    def level_no(self) -> int:
        """logging 모듈 레벨 번호"""
        return logging.getLevelName(self.level)


@dataclass(frozen=True)
class BankConfig:
    """전체 설정 (불변)"""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


class ConfigLoadError(Exception):
    """설정 로드 실패 예외"""

    pass


def _resolve_path(raw: str | Path) -> Path:
    """상대 경로는 프로젝트 루트 기준으로 변환"""
    path = Path(raw)
    if str(raw) == ":memory:" or path.is_absolute():
        return path
    return PROJECT_ROOT / path


def load_config(path: Path | None = None) -> BankConfig:
    """settings.yaml 파일 로드

    Args:
        path: settings.yaml 경로 (None이면 기본 경로 사용)

    Returns:
        BankConfig 인스턴스 (파일이 없으면 기본값)

    Raises:
        ConfigLoadError: 형식이 잘못되었거나 값이 유효하지 않은 경우
    """
    if path is None:
        path = Paths.SETTINGS_FILE

    if not path.exists():
        return BankConfig()

    try:
        content = path.read_text(encoding="utf-8")
        data = yaml.safe_load(content)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigLoadError(f"settings.yaml 파싱 실패: {e}") from e

    if data is None:
        return BankConfig()

    if not isinstance(data, dict):
        raise ConfigLoadError("settings.yaml 최상위는 매핑이어야 합니다")

    db_data = data.get("database") or {}
    log_data = data.get("logging") or {}

    busy_timeout = db_data.get("busy_timeout_ms", Defaults.BUSY_TIMEOUT_MS)
    if not isinstance(busy_timeout, int) or isinstance(busy_timeout, bool) or busy_timeout <= 0:
        raise ConfigLoadError(
            f"database.busy_timeout_ms는 양의 정수여야 합니다: {busy_timeout!r}"
        )

    level = str(log_data.get("level", Defaults.LOG_LEVEL)).upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ConfigLoadError(f"유효하지 않은 로그 레벨입니다: '{level}'")

    db_path = db_data.get("path")
    database = DatabaseConfig(
        path=_resolve_path(db_path) if db_path else Paths.DEFAULT_DB,
        busy_timeout_ms=busy_timeout,
    )

    return BankConfig(database=database, logging=LoggingConfig(level=level))


class Settings:
    """애플리케이션 설정 (싱글턴 패턴)

    settings.yaml을 로드하고 관련 설정을 제공
    """

    _instance: "Settings | None" = None
    _config: BankConfig | None = None

    def __new__(cls, config_path: Path | None = None) -> "Settings":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self, config_path: Path | None = None) -> None:
        if self._config is None:
            type(self)._config = load_config(config_path)

    @property
    def config(self) -> BankConfig:
        """전체 설정"""
        assert self._config is not None
        return self._config

    @property
    def db_path(self) -> Path:
        """DB 경로"""
        return self.config.database.path

    @property
    def busy_timeout_ms(self) -> int:
        """쓰기 잠금 대기 한도 (ms)"""
        return self.config.database.busy_timeout_ms

    @classmethod
    def reset(cls) -> None:
        """싱글턴 인스턴스 초기화 (테스트용)"""
        cls._instance = None
        cls._config = None


def get_settings(config_path: Path | None = None) -> Settings:
    """Settings 인스턴스 반환

    Args:
        config_path: settings.yaml 경로 (None이면 기본 경로 사용)

    Returns:
        Settings 싱글턴 인스턴스
    """
    return Settings(config_path)
