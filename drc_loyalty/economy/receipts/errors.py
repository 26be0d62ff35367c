from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    DUPLICATE_IMAGE = "DUPLICATE_IMAGE"
    DUPLICATE_RECEIPT_NUMBER = "DUPLICATE_RECEIPT_NUMBER"
    DUPLICATE_RECEIPT = "DUPLICATE_RECEIPT"
    SIMILAR_RECEIPT_EXISTS = "SIMILAR_RECEIPT_EXISTS"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    NOT_PARTNER_STORE = "NOT_PARTNER_STORE"
    NO_ACTIVE_CAMPAIGN = "NO_ACTIVE_CAMPAIGN"
    BELOW_MINIMUM_SPEND = "BELOW_MINIMUM_SPEND"
    CAMPAIGN_MAX_REACHED = "CAMPAIGN_MAX_REACHED"
    LOW_CONFIDENCE = "LOW_CONFIDENCE"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    AMOUNT_TOO_HIGH = "AMOUNT_TOO_HIGH"
    INVALID_INPUT = "INVALID_INPUT"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorClass(str, Enum):
    DUPLICATE = "duplicate"
    ELIGIBILITY = "eligibility"
    VALIDATION = "validation"
    INFRASTRUCTURE = "infrastructure"


ERROR_CLASS_BY_CODE: dict[ErrorCode, ErrorClass] = {
    ErrorCode.DUPLICATE_IMAGE: ErrorClass.DUPLICATE,
    ErrorCode.DUPLICATE_RECEIPT_NUMBER: ErrorClass.DUPLICATE,
    ErrorCode.DUPLICATE_RECEIPT: ErrorClass.DUPLICATE,
    ErrorCode.SIMILAR_RECEIPT_EXISTS: ErrorClass.DUPLICATE,
    ErrorCode.RATE_LIMIT_EXCEEDED: ErrorClass.DUPLICATE,
    ErrorCode.NOT_PARTNER_STORE: ErrorClass.ELIGIBILITY,
    ErrorCode.NO_ACTIVE_CAMPAIGN: ErrorClass.ELIGIBILITY,
    ErrorCode.BELOW_MINIMUM_SPEND: ErrorClass.ELIGIBILITY,
    ErrorCode.CAMPAIGN_MAX_REACHED: ErrorClass.ELIGIBILITY,
    ErrorCode.LOW_CONFIDENCE: ErrorClass.VALIDATION,
    ErrorCode.INVALID_AMOUNT: ErrorClass.VALIDATION,
    ErrorCode.AMOUNT_TOO_HIGH: ErrorClass.VALIDATION,
    ErrorCode.INVALID_INPUT: ErrorClass.VALIDATION,
    ErrorCode.INTERNAL_ERROR: ErrorClass.INFRASTRUCTURE,
}

ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.DUPLICATE_IMAGE: "This receipt image has already been submitted.",
    ErrorCode.DUPLICATE_RECEIPT_NUMBER: "A receipt with this number has already been submitted.",
    ErrorCode.DUPLICATE_RECEIPT: "This receipt has already been submitted.",
    ErrorCode.SIMILAR_RECEIPT_EXISTS: "A receipt with the same store, amount and date already exists.",
    ErrorCode.RATE_LIMIT_EXCEEDED: "Too many receipts submitted. Please try again later.",
    ErrorCode.NOT_PARTNER_STORE: "This store is not a partner of the loyalty program.",
    ErrorCode.NO_ACTIVE_CAMPAIGN: "No active campaign applies to this receipt.",
    ErrorCode.BELOW_MINIMUM_SPEND: "The receipt amount is below the campaign minimum spend.",
    ErrorCode.CAMPAIGN_MAX_REACHED: "This campaign has reached its maximum number of redemptions.",
    ErrorCode.LOW_CONFIDENCE: "The receipt could not be read clearly. Please scan it again.",
    ErrorCode.INVALID_AMOUNT: "The receipt amount is invalid.",
    ErrorCode.AMOUNT_TOO_HIGH: "The receipt amount exceeds the allowed maximum.",
    ErrorCode.INVALID_INPUT: "The receipt details are incomplete or invalid.",
    ErrorCode.INTERNAL_ERROR: "Receipt processing failed. Please try again.",
}


class ReceiptError(Exception):
    pass


class ReceiptRejectedError(ReceiptError):
    def __init__(self, code: ErrorCode, message: str | None = None) -> None:
        self.code = code
        self.message = message or ERROR_MESSAGES[code]
        super().__init__(self.message)

    @property
    def error_class(self) -> ErrorClass:
        return ERROR_CLASS_BY_CODE[self.code]


class ReceiptUserNotFoundError(ReceiptError):
    pass


class ReceiptUserInactiveError(ReceiptError):
    pass


class ReceiptNotFoundError(ReceiptError):
    pass


class ReceiptAlreadyReviewedError(ReceiptError):
    pass
