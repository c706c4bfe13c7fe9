"""Domain exception taxonomy

Raised inside repositories, domain services and adapters; use cases
translate them into ``libs.result.Error`` codes.
"""

from typing import Optional


class DomainError(Exception):
    """Base class for domain errors"""


class AccountNotFound(DomainError):
    def __init__(self, account_id: int):
        super().__init__(f"Account {account_id} not found")
        self.account_id = account_id


class InsufficientBalance(DomainError):
    def __init__(self, account_id: int, required: int, available: int):
        super().__init__(
            f"Insufficient balance. Required: {required}, Available: {available}"
        )
        self.account_id = account_id
        self.required = required
        self.available = available


class LockContention(DomainError):
    """Row is locked by another worker or claimer; skip it, it is not a failure"""


class OrderNotFound(DomainError):
    def __init__(self, merchant_order_id: str):
        super().__init__(f"Payment order {merchant_order_id} not found")
        self.merchant_order_id = merchant_order_id


class OrderNotPending(DomainError):
    def __init__(self, merchant_order_id: str, status: str):
        super().__init__(f"Payment order {merchant_order_id} is {status}, not pending")
        self.merchant_order_id = merchant_order_id
        self.status = status


class AmountMismatch(DomainError):
    def __init__(self, merchant_order_id: str, expected: int, received: Optional[int]):
        super().__init__(
            f"Settled amount {received} does not match order {merchant_order_id} amount {expected}"
        )
        self.merchant_order_id = merchant_order_id
        self.expected = expected
        self.received = received


# Generation provider

class ProviderError(DomainError):
    retryable = False

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RetryableProviderError(ProviderError):
    """Network error, timeout, HTTP 429 or 5xx"""

    retryable = True


class TerminalProviderError(ProviderError):
    """Any other 4xx, auth errors, malformed responses"""


# Payment provider

class PaymentProviderError(DomainError):
    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class OrderAlreadyPaid(PaymentProviderError):
    """Provider refused to close an order because it has been paid"""


class SignatureVerificationFailed(DomainError):
    """Webhook signature, certificate serial or payload decryption check failed"""


class ReplaySuspected(DomainError):
    """Webhook timestamp is outside the accepted window"""


class OrderAlreadyClosed(PaymentProviderError):
    """Provider reports the order as already closed"""
