from typing import Optional

from fastapi import HTTPException


class ServiceError(HTTPException):
    """Base for errors raised by the service layer.

    The detail is always a dict with ``message`` and ``code`` so API clients can
    branch on the code without parsing text.
    """

    status_code = 400
    code = "SERVICE_ERROR"
    default_message = "Request could not be processed"

    def __init__(self, message: Optional[str] = None, **extra):
        detail = {"message": message or self.default_message, "code": self.code}
        detail.update(extra)
        super().__init__(status_code=self.status_code, detail=detail)

    @property
    def message(self) -> str:
        return self.detail["message"]


class ValidationFailed(ServiceError):
    code = "VALIDATION_FAILED"
    default_message = "Invalid request"


class InsufficientFunds(ServiceError):
    code = "INSUFFICIENT_FUNDS"
    default_message = "Insufficient available balance"


class InsufficientReserve(ServiceError):
    code = "INSUFFICIENT_RESERVE"
    default_message = "Reserved winning not enough"


class WalletNotFound(ServiceError):
    status_code = 404
    code = "WALLET_NOT_FOUND"
    default_message = "Wallet not found"


class SlotNotFound(ServiceError):
    status_code = 404
    code = "SLOT_NOT_FOUND"
    default_message = "Slot not found"


class DepositNotFound(ServiceError):
    status_code = 404
    code = "DEPOSIT_NOT_FOUND"
    default_message = "Deposit transaction not found"


class BiddingClosed(ServiceError):
    code = "BIDDING_CLOSED"
    default_message = "Slot is not open for bidding"


class SlotLocked(ServiceError):
    status_code = 409
    code = "SLOT_LOCKED"
    default_message = "Slot already has bids and cannot be edited"


class DepositAlreadyProcessed(ServiceError):
    status_code = 409
    code = "DEPOSIT_ALREADY_PROCESSED"
    default_message = "Deposit request was already processed"


class ResultAlreadyAnnounced(ServiceError):
    status_code = 409
    code = "RESULT_ALREADY_ANNOUNCED"
    default_message = "Result already announced"


class AnnouncementTooEarly(ServiceError):
    code = "ANNOUNCEMENT_TOO_EARLY"
    default_message = "Cannot announce result before bidding window closes"


class AnnouncementAborted(ServiceError):
    status_code = 409
    code = "ANNOUNCEMENT_ABORTED"
    default_message = "Winning credits failed; result was not announced"

    def __init__(self, failures: list[dict], message: Optional[str] = None):
        self.failures = failures
        super().__init__(message, failures=failures)


class ResultNotFound(ServiceError):
    status_code = 404
    code = "RESULT_NOT_FOUND"
    default_message = "Result not yet declared for this slot"
