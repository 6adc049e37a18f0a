"""
하드코딩 상수 - 변경될 일이 거의 없는 고정값

중요: 경로는 반드시 pathlib.Path 사용 (Windows/Linux 크로스 플랫폼)
"""

from pathlib import Path


# 프로젝트 루트 (이 파일 기준 2단계 상위: core/constants.py → ledgerbank/)
PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent


class Defaults:
    """기본값 상수"""

    BUSY_TIMEOUT_MS: int = 5000  # 쓰기 잠금 대기 한도
    LOG_LEVEL: str = "INFO"

    HISTORY_LIMIT: int = 100  # 원장 조회 기본 개수
    CONFLICT_RETRIES: int = 3  # CLI 재시도 횟수 (ConflictError)


class Paths:
    """프로젝트 경로 상수 (pathlib 사용 - OS 독립적)"""

    # 디렉토리
    CONFIG_DIR: Path = PROJECT_ROOT / "config"
    DATA_DIR: Path = PROJECT_ROOT / "data"
    LOGS_DIR: Path = PROJECT_ROOT / "logs"

    # 설정 파일
    SETTINGS_FILE: Path = CONFIG_DIR / "settings.yaml"

    # DB 파일
    DEFAULT_DB: Path = DATA_DIR / "ledgerbank.db"


class Tables:
    """테이블 이름"""

    LEDGER_ENTRIES: str = "ledger_entries"
    ACCOUNT_CHECKPOINTS: str = "account_checkpoints"
