"""
원장 도메인 타입

LedgerEntry(원장 항목), Checkpoint(계좌별 잔액 체크포인트),
LedgerDelta(증분 스캔 결과), OperationResult(연산 결과)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import uuid4

from core.types import ErrorKind, OperationStatus, OperationType

# SQLite INTEGER 상한 (부호 있는 64비트)
MAX_AMOUNT: int = 2**63 - 1


def is_valid_amount(amount: object) -> bool:
    """금액 유효성 (양의 정수, bool 제외, SQLite INTEGER 범위)"""
    return (
        isinstance(amount, int)
        and not isinstance(amount, bool)
        and 0 < amount <= MAX_AMOUNT
    )


@dataclass(frozen=True)
class LedgerEntry:
    """원장 항목 (불변)

    - 입금: to_account만 존재
    - 출금: from_account만 존재
    - 이체: 둘 다 존재

    sequence는 저장소가 append 시점에 부여 (저장 전에는 None).
    created_at은 정보용이며 정렬에 사용하지 않음.
    """

    from_account: str | None
    to_account: str | None
    amount: int
    id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    sequence: int | None = None

    @classmethod
    def deposit(cls, account_id: str, amount: int) -> LedgerEntry:
        """입금 항목 생성"""
        return cls(from_account=None, to_account=account_id, amount=amount)

    @classmethod
    def withdrawal(cls, account_id: str, amount: int) -> LedgerEntry:
        """출금 항목 생성"""
        return cls(from_account=account_id, to_account=None, amount=amount)

    @classmethod
    def transfer(cls, from_id: str, to_id: str, amount: int) -> LedgerEntry:
        """이체 항목 생성"""
        return cls(from_account=from_id, to_account=to_id, amount=amount)

    @property
    def operation(self) -> OperationType:
        """항목 형태에 해당하는 연산 종류"""
        if self.from_account is None:
            return OperationType.DEPOSIT
        if self.to_account is None:
            return OperationType.WITHDRAW
        return OperationType.TRANSFER

    def touches(self, account_id: str) -> bool:
        """해당 계좌가 관여한 항목인지"""
        return account_id in (self.from_account, self.to_account)


@dataclass(frozen=True)
class LedgerDelta:
    """증분 스캔 결과

    각 방향의 워터마크보다 큰 sequence의 항목만 집계.
    max_*_seq는 해당 방향 항목이 없으면 0.
    """

    credit_sum: int = 0
    max_credit_seq: int = 0
    debit_sum: int = 0
    max_debit_seq: int = 0

    @property
    def net(self) -> int:
        """순증감 (입금 - 출금)"""
        return self.credit_sum - self.debit_sum

    @property
    def is_empty(self) -> bool:
        """새 항목이 없는지"""
        return self.max_credit_seq == 0 and self.max_debit_seq == 0


@dataclass(frozen=True)
class Checkpoint:
    """계좌별 잔액 체크포인트

    cached_balance는 두 워터마크까지의 항목을 모두 반영한 잔액.
    워터마크는 같은 계좌에 대해 감소하지 않음.
    """

    account_id: str
    last_credit_sequence: int = 0
    last_debit_sequence: int = 0
    cached_balance: int = 0

    @classmethod
    def zero(cls, account_id: str) -> Checkpoint:
        """기준점 체크포인트 (잔액 0, 워터마크 0)"""
        return cls(account_id=account_id)

    @property
    def watermark(self) -> int:
        """반영된 최대 sequence"""
        return max(self.last_credit_sequence, self.last_debit_sequence)

    def advance(self, delta: LedgerDelta) -> Checkpoint:
        """증분을 반영한 새 체크포인트 (워터마크는 후퇴하지 않음)"""
        return Checkpoint(
            account_id=self.account_id,
            last_credit_sequence=max(self.last_credit_sequence, delta.max_credit_seq),
            last_debit_sequence=max(self.last_debit_sequence, delta.max_debit_seq),
            cached_balance=self.cached_balance + delta.net,
        )


@dataclass(frozen=True)
class Reconciliation:
    """잔액 대사 결과"""

    balance: int
    checkpoint: Checkpoint
    previous: Checkpoint

    @property
    def changed(self) -> bool:
        """체크포인트가 갱신되었는지"""
        return self.checkpoint != self.previous


@dataclass(frozen=True)
class OperationResult:
    """원장 연산 결과

    balance는 연산 완료 후 계좌 잔액
    (거절 시에는 대사된 기존 잔액, 이체는 출금 계좌 기준).
    """

    status: OperationStatus
    operation: OperationType
    account_id: str
    amount: int | None
    balance: int
    entry: LedgerEntry | None = None
    error_kind: ErrorKind | None = None
    counterparty_id: str | None = None

    @property
    def ok(self) -> bool:
        """성공 여부"""
        return self.status == OperationStatus.SUCCESS

    @classmethod
    def success(
        cls,
        operation: OperationType,
        account_id: str,
        amount: int | None,
        balance: int,
        entry: LedgerEntry | None = None,
        counterparty_id: str | None = None,
    ) -> OperationResult:
        """성공 결과"""
        return cls(
            status=OperationStatus.SUCCESS,
            operation=operation,
            account_id=account_id,
            amount=amount,
            balance=balance,
            entry=entry,
            counterparty_id=counterparty_id,
        )

    @classmethod
    def insufficient_funds(
        cls,
        operation: OperationType,
        account_id: str,
        amount: int,
        balance: int,
        counterparty_id: str | None = None,
    ) -> OperationResult:
        """잔액 부족 거절 결과"""
        return cls(
            status=OperationStatus.REJECTED,
            operation=operation,
            account_id=account_id,
            amount=amount,
            balance=balance,
            error_kind=ErrorKind.INSUFFICIENT_FUNDS,
            counterparty_id=counterparty_id,
        )
