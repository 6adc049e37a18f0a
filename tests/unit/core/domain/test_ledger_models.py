"""
원장 도메인 타입 테스트

LedgerEntry / LedgerDelta / Checkpoint / OperationResult
"""

from dataclasses import FrozenInstanceError
from datetime import timezone

import pytest

from core.domain.ledger import (
    MAX_AMOUNT,
    Checkpoint,
    LedgerDelta,
    LedgerEntry,
    OperationResult,
    Reconciliation,
    is_valid_amount,
)
from core.types import ErrorKind, OperationStatus, OperationType


class TestIsValidAmount:
    """금액 유효성"""

    @pytest.mark.parametrize("amount", [1, 40, MAX_AMOUNT])
    def test_valid(self, amount: int) -> None:
        assert is_valid_amount(amount) is True

    @pytest.mark.parametrize(
        "amount",
        [0, -1, MAX_AMOUNT + 1, True, 1.5, 10.0, "10", None],
    )
    def test_invalid(self, amount: object) -> None:
        assert is_valid_amount(amount) is False


class TestLedgerEntry:
    """LedgerEntry 테스트"""

    def test_deposit_shape(self) -> None:
        """입금: to_account만 존재"""
        entry = LedgerEntry.deposit("user1", 40)

        assert entry.from_account is None
        assert entry.to_account == "user1"
        assert entry.operation == OperationType.DEPOSIT

    def test_withdrawal_shape(self) -> None:
        """출금: from_account만 존재"""
        entry = LedgerEntry.withdrawal("user1", 10)

        assert entry.from_account == "user1"
        assert entry.to_account is None
        assert entry.operation == OperationType.WITHDRAW

    def test_transfer_shape(self) -> None:
        """이체: 둘 다 존재"""
        entry = LedgerEntry.transfer("user1", "user2", 30)

        assert entry.operation == OperationType.TRANSFER
        assert entry.touches("user1")
        assert entry.touches("user2")
        assert not entry.touches("user3")

    def test_generated_fields(self) -> None:
        """id / created_at 자동 생성, sequence는 저장 전 None"""
        first = LedgerEntry.deposit("user1", 1)
        second = LedgerEntry.deposit("user1", 1)

        assert first.id != second.id
        assert first.created_at.tzinfo == timezone.utc
        assert first.sequence is None

    def test_immutable(self) -> None:
        entry = LedgerEntry.deposit("user1", 1)

        with pytest.raises(FrozenInstanceError):
            entry.amount = 2  # type: ignore


class TestLedgerDelta:
    """LedgerDelta 테스트"""

    def test_empty(self) -> None:
        delta = LedgerDelta()

        assert delta.is_empty
        assert delta.net == 0

    def test_net(self) -> None:
        delta = LedgerDelta(credit_sum=40, max_credit_seq=1, debit_sum=30, max_debit_seq=2)

        assert delta.net == 10
        assert not delta.is_empty


class TestCheckpoint:
    """Checkpoint 테스트"""

    def test_zero(self) -> None:
        cp = Checkpoint.zero("user1")

        assert cp.account_id == "user1"
        assert cp.last_credit_sequence == 0
        assert cp.last_debit_sequence == 0
        assert cp.cached_balance == 0
        assert cp.watermark == 0

    def test_advance(self) -> None:
        """증분 반영"""
        cp = Checkpoint("user1", last_credit_sequence=3, last_debit_sequence=5, cached_balance=10)
        delta = LedgerDelta(credit_sum=7, max_credit_seq=8, debit_sum=2, max_debit_seq=9)

        advanced = cp.advance(delta)

        assert advanced.cached_balance == 15
        assert advanced.last_credit_sequence == 8
        assert advanced.last_debit_sequence == 9
        assert advanced.watermark == 9

    def test_advance_keeps_watermark_when_side_empty(self) -> None:
        """한쪽 방향 항목이 없으면 해당 워터마크 유지 (후퇴 없음)"""
        cp = Checkpoint("user1", last_credit_sequence=3, last_debit_sequence=5, cached_balance=10)
        delta = LedgerDelta(credit_sum=4, max_credit_seq=6)

        advanced = cp.advance(delta)

        assert advanced.last_credit_sequence == 6
        assert advanced.last_debit_sequence == 5
        assert advanced.cached_balance == 14

    def test_advance_empty_delta_is_identity(self) -> None:
        """새 항목이 없으면 동일 체크포인트"""
        cp = Checkpoint("user1", 3, 5, 10)

        assert cp.advance(LedgerDelta()) == cp


class TestReconciliation:
    """Reconciliation 테스트"""

    def test_changed(self) -> None:
        before = Checkpoint.zero("user1")
        after = before.advance(LedgerDelta(credit_sum=5, max_credit_seq=1))

        assert Reconciliation(5, after, before).changed is True
        assert Reconciliation(0, before, before).changed is False


class TestOperationResult:
    """OperationResult 테스트"""

    def test_success(self) -> None:
        result = OperationResult.success(OperationType.DEPOSIT, "user1", 40, balance=40)

        assert result.ok
        assert result.status == OperationStatus.SUCCESS
        assert result.error_kind is None

    def test_insufficient_funds(self) -> None:
        result = OperationResult.insufficient_funds(
            OperationType.TRANSFER, "user1", 100, balance=10, counterparty_id="user2"
        )

        assert not result.ok
        assert result.status == OperationStatus.REJECTED
        assert result.error_kind == ErrorKind.INSUFFICIENT_FUNDS
        assert result.entry is None
        assert result.counterparty_id == "user2"
