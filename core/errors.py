"""
예외 정의

모든 예외는 ErrorKind를 가진다.
- 검증 오류 (InvalidAmountError, SameAccountError): 저장소 접근 전 발생
- 저장소 오류 (StorageError, ConflictError): 작업 단위 전체 롤백 후 전파

잔액 부족(INSUFFICIENT_FUNDS)은 예외가 아닌 OperationResult로 반환됨.
"""

from core.types import ErrorKind


class LedgerError(Exception):
    """원장 예외 기본 클래스"""

    kind: ErrorKind = ErrorKind.STORAGE_FAILURE
    retryable: bool = False


class ValidationError(LedgerError, ValueError):
    """입력 검증 실패 (부수 효과 없음)"""


class InvalidAmountError(ValidationError):
    """금액이 양의 정수가 아니거나 잔액 한도(MAX_AMOUNT)를 넘김"""

    kind = ErrorKind.INVALID_AMOUNT

    def __init__(self, amount: object, reason: str | None = None):
        super().__init__(reason or f"금액은 양의 정수여야 합니다: {amount!r}")
        self.amount = amount


class SameAccountError(ValidationError):
    """출금 계좌와 입금 계좌가 동일"""

    kind = ErrorKind.SAME_ACCOUNT

    def __init__(self, account_id: str):
        super().__init__(f"동일 계좌로 이체할 수 없습니다: {account_id}")
        self.account_id = account_id


class StorageError(LedgerError):
    """저장소 오류 (연결 끊김, 제약 위반 등)"""

    kind = ErrorKind.STORAGE_FAILURE


class ConflictError(StorageError):
    """직렬화 충돌 / 잠금 대기 초과

    작업 단위는 전부 롤백되었으므로 동일 입력으로 전체 연산을 재시도해도 안전.
    """

    kind = ErrorKind.CONFLICT
    retryable = True
