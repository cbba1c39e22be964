class LoyaltyError(Exception):
    pass


class NotFoundError(LoyaltyError):
    pass


class AccountNotFoundError(NotFoundError):
    pass


class ReferralCodeNotFoundError(NotFoundError):
    pass


class TaskNotFoundError(NotFoundError):
    pass


class AchievementNotFoundError(NotFoundError):
    pass


class AlreadyUsedError(LoyaltyError):
    pass


class ReferralCodeAlreadyUsedError(AlreadyUsedError):
    pass


class ReferralAlreadyActivatedError(AlreadyUsedError):
    pass


class AlreadyCompletedError(LoyaltyError):
    pass


class TaskAlreadyCompletedError(TaskNotFoundError, AlreadyCompletedError):
    pass


class SelfReferralRejectedError(LoyaltyError):
    pass


class InsufficientBalanceError(LoyaltyError):
    def __init__(self, *, balance: int, requested: int) -> None:
        super().__init__(f"insufficient balance: balance={balance} requested={requested}")
        self.balance = balance
        self.requested = requested


class CodeGenerationExhaustedError(LoyaltyError):
    pass


class ConcurrencyConflictError(LoyaltyError):
    pass


class IdempotencyKeyConflictError(AlreadyUsedError):
    def __init__(self, idempotency_key: str) -> None:
        super().__init__(f"idempotency key already used for a different posting: {idempotency_key}")
        self.idempotency_key = idempotency_key
