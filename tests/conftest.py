"""
pytest 공통 fixture 정의

임시 디렉토리, 설정 파일, 스키마가 준비된 SQLite DB
"""

import tempfile
from pathlib import Path

import pytest
import pytest_asyncio

from adapters.db.sqlite_adapter import SQLiteAdapter, init_schema
from core.config.loader import Settings
from core.ledger.operations import LedgerOperations


@pytest.fixture
def temp_dir() -> Path:
    """OS 독립적인 임시 디렉토리 생성"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    """테스트용 DB 파일 경로"""
    return tmp_path / "ledger.db"


@pytest_asyncio.fixture
async def db(db_path: Path) -> SQLiteAdapter:
    """스키마가 생성된 SQLite 어댑터"""
    adapter = SQLiteAdapter(db_path, busy_timeout_ms=2000)
    await adapter.connect()
    await init_schema(adapter)
    yield adapter
    await adapter.close()


@pytest.fixture
def ops(db: SQLiteAdapter) -> LedgerOperations:
    """LedgerOperations 인스턴스"""
    return LedgerOperations(db)


@pytest.fixture
def temp_settings_file(temp_dir: Path) -> Path:
    """테스트용 settings.yaml 파일 생성"""
    content = """# 테스트용 settings.yaml
database:
  path: /tmp/ledgerbank-test/bank.db
  busy_timeout_ms: 1500

logging:
  level: debug
"""
    settings_path = temp_dir / "settings.yaml"
    settings_path.write_text(content, encoding="utf-8")
    return settings_path


@pytest.fixture(autouse=True)
def reset_settings():
    """Settings 싱글턴 초기화"""
    Settings.reset()
    yield
    Settings.reset()
