"""
Ledger 저장소

append-only 원장 항목 저장 및 계좌별 증분 스캔
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any

from core.constants import Defaults, Tables
from core.domain.ledger import LedgerDelta, LedgerEntry, is_valid_amount
from core.errors import (
    InvalidAmountError,
    SameAccountError,
    StorageError,
    ValidationError,
)
from core.types import ErrorKind

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)


_ENTRY_COLUMNS = "sequence, id, from_account, to_account, amount, created_at"


class InvalidEntryError(ValidationError):
    """원장 항목 형태 오류 (입금/출금 계좌 모두 없음)

    계좌 구성 규칙 위반이므로 SameAccountError와 같은 kind로 분류.
    """

    kind = ErrorKind.SAME_ACCOUNT


class LedgerStore:
    """Ledger 저장소

    원장 항목을 append-only로 저장하고 조회하는 클래스.
    기존 항목은 수정/삭제하지 않음 (DB 트리거로도 차단).

    호출자가 연 작업 단위(SQLiteAdapter.transaction) 안에서 실행되어
    체크포인트 조회와 같은 스냅샷을 보게 된다.

    Args:
        db: SQLite 어댑터
    """

    def __init__(self, db: SQLiteAdapter):
        self.db = db

    async def append(self, entry: LedgerEntry) -> int:
        """원장 항목 추가

        Args:
            entry: 저장할 항목 (sequence는 무시되고 새로 부여됨)

        Returns:
            부여된 sequence

        Raises:
            InvalidAmountError: 금액이 양의 정수가 아닌 경우
            SameAccountError: 출금/입금 계좌가 같은 경우
            InvalidEntryError: 계좌가 하나도 없는 경우
        """
        _validate_entry(entry)

        cursor = await self.db.execute(
            f"""
            INSERT INTO {Tables.LEDGER_ENTRIES} (
                id, from_account, to_account, amount, created_at
            ) VALUES (?, ?, ?, ?, ?)
            """,
            (
                entry.id,
                entry.from_account,
                entry.to_account,
                entry.amount,
                entry.created_at.isoformat(),
            ),
        )

        sequence = cursor.lastrowid
        if sequence is None:
            raise StorageError(f"sequence 부여 실패: {entry.id}")

        logger.debug(
            "원장 항목 추가",
            extra={"entry_id": entry.id, "sequence": sequence},
        )
        return sequence

    async def scan_since(
        self,
        account_id: str,
        after_credit_seq: int,
        after_debit_seq: int,
    ) -> LedgerDelta:
        """워터마크 이후 항목 집계

        입금 방향(to_account)은 after_credit_seq보다 큰 항목,
        출금 방향(from_account)은 after_debit_seq보다 큰 항목만 집계.
        하나의 쿼리로 두 방향을 같은 스냅샷에서 읽는다.

        Args:
            account_id: 계좌 ID
            after_credit_seq: 입금 방향 워터마크
            after_debit_seq: 출금 방향 워터마크

        Returns:
            LedgerDelta (항목이 없으면 합계/최대값 0)
        """
        row = await self.db.fetchone(
            f"""
            SELECT credit.total, credit.max_seq, debit.total, debit.max_seq
            FROM
                (SELECT COALESCE(SUM(amount), 0) AS total,
                        COALESCE(MAX(sequence), 0) AS max_seq
                 FROM {Tables.LEDGER_ENTRIES}
                 WHERE to_account = ? AND sequence > ?) AS credit,
                (SELECT COALESCE(SUM(amount), 0) AS total,
                        COALESCE(MAX(sequence), 0) AS max_seq
                 FROM {Tables.LEDGER_ENTRIES}
                 WHERE from_account = ? AND sequence > ?) AS debit
            """,
            (account_id, after_credit_seq, account_id, after_debit_seq),
        )

        if row is None:
            return LedgerDelta()

        return LedgerDelta(
            credit_sum=row[0],
            max_credit_seq=row[1],
            debit_sum=row[2],
            max_debit_seq=row[3],
        )

    async def get_entry(self, entry_id: str) -> LedgerEntry | None:
        """항목 단건 조회

        Args:
            entry_id: 항목 ID

        Returns:
            LedgerEntry (없으면 None)
        """
        row = await self.db.fetchone(
            f"SELECT {_ENTRY_COLUMNS} FROM {Tables.LEDGER_ENTRIES} WHERE id = ?",
            (entry_id,),
        )
        return _row_to_entry(row) if row else None

    async def get_entries_by_account(
        self,
        account_id: str,
        limit: int = Defaults.HISTORY_LIMIT,
        offset: int = 0,
    ) -> list[LedgerEntry]:
        """계좌별 항목 조회 (입금/출금 양방향, 최신순)

        Args:
            account_id: 계좌 ID
            limit: 조회 개수 제한
            offset: 시작 위치

        Returns:
            LedgerEntry 목록 (sequence 내림차순)
        """
        rows = await self.db.fetchall(
            f"""
            SELECT {_ENTRY_COLUMNS}
            FROM {Tables.LEDGER_ENTRIES}
            WHERE from_account = ? OR to_account = ?
            ORDER BY sequence DESC
            LIMIT ? OFFSET ?
            """,
            (account_id, account_id, limit, offset),
        )
        return [_row_to_entry(row) for row in rows]

    async def count_entries(self, account_id: str | None = None) -> int:
        """항목 수 조회

        Args:
            account_id: 계좌 ID (None이면 전체)
        """
        if account_id is None:
            row = await self.db.fetchone(
                f"SELECT COUNT(*) FROM {Tables.LEDGER_ENTRIES}"
            )
        else:
            row = await self.db.fetchone(
                f"""
                SELECT COUNT(*) FROM {Tables.LEDGER_ENTRIES}
                WHERE from_account = ? OR to_account = ?
                """,
                (account_id, account_id),
            )
        return row[0] if row else 0

    async def get_last_sequence(self) -> int:
        """마지막 sequence 조회 (비어 있으면 0)"""
        row = await self.db.fetchone(
            f"SELECT COALESCE(MAX(sequence), 0) FROM {Tables.LEDGER_ENTRIES}"
        )
        return row[0] if row else 0


def _validate_entry(entry: LedgerEntry) -> None:
    """항목 형태 검증 (저장소 접근 전)"""
    if not is_valid_amount(entry.amount):
        raise InvalidAmountError(entry.amount)

    if entry.from_account is None and entry.to_account is None:
        raise InvalidEntryError(f"계좌가 없는 원장 항목: {entry.id}")

    if entry.from_account is not None and entry.from_account == entry.to_account:
        raise SameAccountError(entry.from_account)


def _row_to_entry(row: tuple[Any, ...]) -> LedgerEntry:
    """DB 행 → LedgerEntry 변환"""
    sequence, entry_id, from_account, to_account, amount, created_at = row

    return LedgerEntry(
        id=entry_id,
        from_account=from_account,
        to_account=to_account,
        amount=amount,
        created_at=datetime.fromisoformat(created_at),
        sequence=sequence,
    )
