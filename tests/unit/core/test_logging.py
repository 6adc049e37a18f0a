"""
core/logging.py 테스트

핸들러 구성, 로그 파일 생성, 시끄러운 로거 레벨 조정
"""

import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

import pytest

from core.constants import Paths
from core.logging import NOISY_LOGGERS, get_log_file_path, setup_logging


@pytest.fixture
def restore_root_logger():
    """테스트 후 루트 로거 핸들러/레벨 복원"""
    root = logging.getLogger()
    saved_handlers = list(root.handlers)
    saved_level = root.level
    yield
    for handler in root.handlers:
        if handler not in saved_handlers:
            handler.close()
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)


class TestSetupLogging:
    """setup_logging 테스트"""

    def test_handlers(self, temp_dir: Path, restore_root_logger) -> None:
        """콘솔 + 일별 파일 핸들러"""
        root = setup_logging("bank", console_level=logging.WARNING, log_dir=temp_dir)

        assert len(root.handlers) == 2
        console, file_handler = root.handlers
        assert console.level == logging.WARNING
        assert isinstance(file_handler, TimedRotatingFileHandler)
        assert file_handler.level == logging.INFO

    def test_writes_log_file(self, temp_dir: Path, restore_root_logger) -> None:
        """파일에 기록"""
        setup_logging("bank", log_dir=temp_dir)

        logging.getLogger("core.ledger").info("입금 완료")
        for handler in logging.getLogger().handlers:
            handler.flush()

        content = (temp_dir / "bank.log").read_text(encoding="utf-8")
        assert "입금 완료" in content
        assert "core.ledger" in content

    def test_no_duplicate_handlers(self, temp_dir: Path, restore_root_logger) -> None:
        """두 번 호출해도 핸들러 중복 없음"""
        setup_logging("bank", log_dir=temp_dir)
        root = setup_logging("bank", log_dir=temp_dir)

        assert len(root.handlers) == 2

    def test_noisy_loggers_quieted(self, temp_dir: Path, restore_root_logger) -> None:
        setup_logging("bank", log_dir=temp_dir)

        for name in NOISY_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING


class TestGetLogFilePath:
    """get_log_file_path 테스트"""

    def test_default_dir(self) -> None:
        assert get_log_file_path("bank") == Paths.LOGS_DIR / "bank.log"

    def test_custom_dir(self, temp_dir: Path) -> None:
        assert get_log_file_path("bank", temp_dir) == temp_dir / "bank.log"
