"""
Ledger Operations

입금 / 출금 / 이체 / 잔액 조회.

모든 연산은 하나의 작업 단위(BEGIN IMMEDIATE 트랜잭션) 안에서
Begin → Reconcile → Validate → Append(선택) → PersistCheckpoint → Commit
순서로 진행되며, 실패 시 어느 단계에서든 전체 롤백(Abort).

동시성: BEGIN IMMEDIATE가 작업 단위 시작 시점에 DB 쓰기 잠금을 잡으므로
같은 계좌에 대한 두 출금이 같은 잔액을 동시에 검증할 수 없다 (write skew 없음).
잠금 대기 초과는 ConflictError로 전파되며 재시도는 호출자 책임.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING

from core.domain.ledger import (
    MAX_AMOUNT,
    Checkpoint,
    LedgerEntry,
    OperationResult,
    Reconciliation,
    is_valid_amount,
)
from core.errors import InvalidAmountError, SameAccountError
from core.ledger.reconciler import BalanceReconciler
from core.ledger.store import LedgerStore
from core.storage.checkpoint_store import CheckpointStore
from core.types import OperationType, TransactionMode

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)


def _require_amount(amount: int) -> None:
    """금액 검증 (저장소 접근 전)"""
    if not is_valid_amount(amount):
        raise InvalidAmountError(amount)


def _require_capacity(account_id: str, balance: int, amount: int) -> None:
    """입금 후 잔액이 INTEGER(int64) 범위를 넘지 않는지 검증"""
    if balance + amount > MAX_AMOUNT:
        raise InvalidAmountError(
            amount, f"입금 후 잔액이 한도를 넘습니다: {account_id} {balance} + {amount}"
        )


class LedgerOperations:
    """원장 연산

    저장소/트랜잭션 제공자는 주입받는다 (모듈 전역 연결 없음).
    잔액은 프로세스 내에 캐시하지 않으며 항상 체크포인트 + 원장에서 대사한다.

    Args:
        db: SQLite 어댑터 (트랜잭션 제공자)
        ledger_store: 원장 저장소 (None이면 db로 생성)
        checkpoint_store: 체크포인트 저장소 (None이면 db로 생성)

    사용 예시:
    ```python
    async with SQLiteAdapter(db_path) as db:
        await init_schema(db)
        ops = LedgerOperations(db)

        await ops.deposit("user1", 40)
        result = await ops.withdraw("user1", 100)
        if result.error_kind == ErrorKind.INSUFFICIENT_FUNDS:
            ...
        balance = await ops.get_balance("user1")
    ```
    """

    def __init__(
        self,
        db: SQLiteAdapter,
        ledger_store: LedgerStore | None = None,
        checkpoint_store: CheckpointStore | None = None,
    ):
        self.db = db
        self.ledger_store = ledger_store or LedgerStore(db)
        self.checkpoint_store = checkpoint_store or CheckpointStore(db)
        self.reconciler = BalanceReconciler(self.ledger_store, self.checkpoint_store)

    # -------------------------------------------------------------------------
    # 연산
    # -------------------------------------------------------------------------

    async def deposit(self, account_id: str, amount: int) -> OperationResult:
        """입금

        입금은 항상 유효하지만 체크포인트를 먼저 갱신해
        이후 출금이 최신 기준점에서 대사하도록 한다.

        Raises:
            InvalidAmountError: 금액이 양의 정수가 아니거나 입금 후 잔액이 한도 초과
            ConflictError: 잠금 대기 초과 (재시도 가능)
            StorageError: 저장소 오류
        """
        _require_amount(amount)

        async with self.db.transaction(TransactionMode.IMMEDIATE):
            recon = await self._refresh(account_id)
            _require_capacity(account_id, recon.balance, amount)
            entry = await self._append(LedgerEntry.deposit(account_id, amount))

        result = OperationResult.success(
            OperationType.DEPOSIT,
            account_id,
            amount,
            balance=recon.balance + amount,
            entry=entry,
        )
        self._log_result(result)
        return result

    async def withdraw(self, account_id: str, amount: int) -> OperationResult:
        """출금

        잔액 부족이면 체크포인트 갱신만 커밋하고 출금 항목은 추가하지 않음.

        Returns:
            성공 또는 INSUFFICIENT_FUNDS 거절 결과

        Raises:
            InvalidAmountError: 금액이 양의 정수가 아닌 경우
            ConflictError: 잠금 대기 초과 (재시도 가능)
            StorageError: 저장소 오류
        """
        _require_amount(amount)

        async with self.db.transaction(TransactionMode.IMMEDIATE):
            recon = await self._refresh(account_id)

            if recon.balance < amount:
                result = OperationResult.insufficient_funds(
                    OperationType.WITHDRAW, account_id, amount, recon.balance
                )
            else:
                entry = await self._append(LedgerEntry.withdrawal(account_id, amount))
                result = OperationResult.success(
                    OperationType.WITHDRAW,
                    account_id,
                    amount,
                    balance=recon.balance - amount,
                    entry=entry,
                )

        self._log_result(result)
        return result

    async def transfer(self, from_id: str, to_id: str, amount: int) -> OperationResult:
        """이체

        출금 계좌만 대사/검증한다 (입금 계좌 잔액은 조건이 아님).
        입금 계좌는 잔액 한도 확인을 위해 읽기만 하고 체크포인트는 저장하지 않음.

        Returns:
            성공 또는 INSUFFICIENT_FUNDS 거절 결과 (balance는 출금 계좌 기준)

        Raises:
            InvalidAmountError: 금액이 양의 정수가 아니거나 입금 계좌 잔액이 한도 초과
            SameAccountError: from_id == to_id
            ConflictError: 잠금 대기 초과 (재시도 가능)
            StorageError: 저장소 오류
        """
        _require_amount(amount)
        if from_id == to_id:
            raise SameAccountError(from_id)

        async with self.db.transaction(TransactionMode.IMMEDIATE):
            recon = await self._refresh(from_id)

            if recon.balance < amount:
                result = OperationResult.insufficient_funds(
                    OperationType.TRANSFER,
                    from_id,
                    amount,
                    recon.balance,
                    counterparty_id=to_id,
                )
            else:
                recipient = await self.reconciler.reconcile(to_id)
                _require_capacity(to_id, recipient.balance, amount)

                entry = await self._append(LedgerEntry.transfer(from_id, to_id, amount))
                result = OperationResult.success(
                    OperationType.TRANSFER,
                    from_id,
                    amount,
                    balance=recon.balance - amount,
                    entry=entry,
                    counterparty_id=to_id,
                )

        self._log_result(result)
        return result

    async def get_balance(self, account_id: str) -> int:
        """잔액 조회

        조회도 체크포인트를 전진시킨다 (이후 대사 비용 절감).

        Raises:
            ConflictError: 잠금 대기 초과 (재시도 가능)
            StorageError: 저장소 오류
        """
        async with self.db.transaction(TransactionMode.IMMEDIATE):
            recon = await self._refresh(account_id)

        logger.debug(
            f"{OperationType.BALANCE.value}: {account_id} {recon.balance}",
            extra={
                "operation": OperationType.BALANCE.value,
                "account_id": account_id,
                "balance": recon.balance,
            },
        )
        return recon.balance

    async def rebuild_checkpoint(self, account_id: str) -> int:
        """체크포인트 재구축

        기준점(잔액 0, 워터마크 0)에서 전체 원장을 재집계해 덮어쓴다.
        전체 재집계의 워터마크는 기존 워터마크 이상이므로 역행하지 않음.

        Returns:
            재집계된 잔액
        """
        async with self.db.transaction(TransactionMode.IMMEDIATE):
            stored = await self.checkpoint_store.read(account_id)
            incremental = await self.reconciler.reconcile(account_id, baseline=stored)
            recon = await self.reconciler.reconcile(
                account_id, baseline=Checkpoint.zero(account_id)
            )

            if recon.balance != incremental.balance:
                logger.warning(
                    "체크포인트 불일치 - 재구축",
                    extra={
                        "account_id": account_id,
                        "incremental_balance": incremental.balance,
                        "rebuilt_balance": recon.balance,
                    },
                )

            if recon.checkpoint != stored:
                await self.checkpoint_store.upsert(recon.checkpoint)

        logger.info(f"Checkpoint rebuilt: {account_id} -> {recon.balance}")
        return recon.balance

    # -------------------------------------------------------------------------
    # 작업 단위 내부 단계
    # -------------------------------------------------------------------------

    async def _refresh(self, account_id: str) -> Reconciliation:
        """Reconcile + PersistCheckpoint (변경 없으면 저장 생략)"""
        recon = await self.reconciler.reconcile(account_id)

        if recon.changed:
            await self.checkpoint_store.upsert(recon.checkpoint)

        return recon

    async def _append(self, entry: LedgerEntry) -> LedgerEntry:
        """Append - 부여된 sequence를 채운 항목 반환"""
        sequence = await self.ledger_store.append(entry)
        return replace(entry, sequence=sequence)

    def _log_result(self, result: OperationResult) -> None:
        extra = {
            "operation": result.operation.value,
            "account_id": result.account_id,
            "counterparty_id": result.counterparty_id,
            "amount": result.amount,
            "balance": result.balance,
        }

        if result.ok:
            logger.info(
                f"{result.operation.value} 완료: {result.account_id} {result.amount}",
                extra={**extra, "sequence": result.entry.sequence if result.entry else None},
            )
        else:
            logger.warning(
                f"{result.operation.value} 거절: {result.error_kind.value}",
                extra=extra,
            )
