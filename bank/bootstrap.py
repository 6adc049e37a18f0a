"""
Bank Bootstrap

설정 로드, DB 연결, 명령 실행.

실행 방법:
    python -m bank init-db
    python -m bank deposit user1 40
    python -m bank transfer user1 user2 30
    python -m bank balance user1
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, Awaitable, Callable

from adapters.db.sqlite_adapter import SQLiteAdapter, init_schema
from core.config.loader import ConfigLoadError, get_settings
from core.constants import Defaults
from core.domain.ledger import OperationResult
from core.errors import ConflictError, StorageError, ValidationError
from core.ledger.operations import LedgerOperations
from core.logging import setup_logging

logger = logging.getLogger("bank")

# 종료 코드
EXIT_OK = 0
EXIT_REJECTED = 1  # 검증 오류 / 업무 거절
EXIT_STORAGE = 2  # 저장소 오류


def build_parser() -> argparse.ArgumentParser:
    """CLI 인자 파서 생성"""
    parser = argparse.ArgumentParser(
        prog="bank",
        description="체크포인트 기반 잔액 원장",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="settings.yaml 경로 (기본: config/settings.yaml)",
    )
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="DB 파일 경로 (설정 파일보다 우선)",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="스키마 생성")

    deposit = sub.add_parser("deposit", help="입금")
    deposit.add_argument("account")
    deposit.add_argument("amount", type=int)

    withdraw = sub.add_parser("withdraw", help="출금")
    withdraw.add_argument("account")
    withdraw.add_argument("amount", type=int)

    transfer = sub.add_parser("transfer", help="이체")
    transfer.add_argument("from_account")
    transfer.add_argument("to_account")
    transfer.add_argument("amount", type=int)

    balance = sub.add_parser("balance", help="잔액 조회")
    balance.add_argument("account")

    history = sub.add_parser("history", help="원장 조회")
    history.add_argument("account")
    history.add_argument("--limit", type=int, default=Defaults.HISTORY_LIMIT)

    return parser


async def with_conflict_retry(
    call: Callable[[], Awaitable[Any]],
    retries: int = Defaults.CONFLICT_RETRIES,
) -> Any:
    """ConflictError 시 전체 연산 재시도

    작업 단위는 실패 시 전부 롤백되므로 같은 입력으로 다시 호출해도 안전.
    """
    attempt = 0
    while True:
        try:
            return await call()
        except ConflictError as e:
            attempt += 1
            if attempt > retries:
                raise
            logger.warning(f"Conflict - 재시도 {attempt}/{retries}: {e}")
            await asyncio.sleep(0.05 * attempt)


def _print_result(result: OperationResult) -> int:
    if result.ok:
        print(f"{result.operation.value} OK: {result.account_id} balance={result.balance}")
        return EXIT_OK

    print(
        f"{result.operation.value} REJECTED ({result.error_kind.value}): "
        f"{result.account_id} balance={result.balance}"
    )
    return EXIT_REJECTED


async def run_command(args: argparse.Namespace, db: SQLiteAdapter) -> int:
    """명령 실행

    Returns:
        종료 코드
    """
    if args.command == "init-db":
        await init_schema(db)
        print(f"schema ready: {db.db_path}")
        return EXIT_OK

    ops = LedgerOperations(db)

    if args.command == "deposit":
        result = await with_conflict_retry(lambda: ops.deposit(args.account, args.amount))
        return _print_result(result)

    if args.command == "withdraw":
        result = await with_conflict_retry(lambda: ops.withdraw(args.account, args.amount))
        return _print_result(result)

    if args.command == "transfer":
        result = await with_conflict_retry(
            lambda: ops.transfer(args.from_account, args.to_account, args.amount)
        )
        return _print_result(result)

    if args.command == "balance":
        balance = await with_conflict_retry(lambda: ops.get_balance(args.account))
        print(balance)
        return EXIT_OK

    if args.command == "history":
        entries = await ops.ledger_store.get_entries_by_account(args.account, limit=args.limit)
        for entry in entries:
            print(
                f"{entry.sequence:>8}  {entry.operation.value:<8}  "
                f"{entry.from_account or '-':>12} -> {entry.to_account or '-':<12}  "
                f"{entry.amount:>12}  {entry.created_at.isoformat()}"
            )
        return EXIT_OK

    raise ValueError(f"Unknown command: {args.command}")


async def main(argv: list[str] | None = None) -> int:
    """CLI 진입점

    Returns:
        종료 코드 (0: 성공, 1: 검증 오류/거절, 2: 저장소 오류)
    """
    args = build_parser().parse_args(argv)

    try:
        settings = get_settings(args.config)
    except ConfigLoadError as e:
        print(f"config error: {e}")
        return EXIT_STORAGE

    setup_logging("bank", console_level=settings.config.logging.level_no)

    db_path = args.db or settings.db_path

    try:
        async with SQLiteAdapter(db_path, busy_timeout_ms=settings.busy_timeout_ms) as db:
            return await run_command(args, db)
    except ValidationError as e:
        print(f"{e.kind.value}: {e}")
        return EXIT_REJECTED
    except StorageError as e:
        logger.error(f"{e.kind.value}: {e}")
        print(f"{e.kind.value}: {e}")
        return EXIT_STORAGE


def cli() -> None:
    """console_scripts 진입점"""
    sys.exit(asyncio.run(main()))
